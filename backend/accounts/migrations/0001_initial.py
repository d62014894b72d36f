import django.contrib.auth.models
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


TRANSACTION_TYPES = [
    ('RECHARGE', 'Recharge'),
    ('BONUS', 'Bonus'),
    ('CONSULTATION_DEDUCTION', 'Consultation Deduction'),
    ('PRODUCT_DEDUCTION', 'Product Deduction'),
    ('DIGITAL_PRODUCT_DEDUCTION', 'Digital Product Deduction'),
    ('WEBINAR_DEDUCTION', 'Webinar Deduction'),
    ('ORDER_EARNING', 'Order Earning'),
    ('REFUND', 'Refund'),
    ('CASHBACK', 'Cashback'),
    ('REFERRAL_BONUS', 'Referral Bonus'),
]

TRANSACTION_SOURCES = [
    ('PAYMENT', 'Payment'),
    ('CASHBACK', 'Cashback'),
    ('REFERRAL', 'Referral'),
    ('COUPON', 'Coupon'),
    ('REFUND', 'Refund'),
    ('ORDER', 'Order'),
    ('ADMIN', 'Admin'),
]

TRANSACTION_STATUSES = [
    ('PENDING', 'Pending'),
    ('COMPLETED', 'Completed'),
    ('FAILED', 'Failed'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='CustomUser',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('username', models.CharField(db_index=True, max_length=150, unique=True)),
                ('role', models.CharField(choices=[('user', 'User'), ('expert', 'Expert'), ('admin', 'Admin')], db_index=True, default='user', max_length=20)),
                ('full_name', models.CharField(blank=True, max_length=150)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('default_currency', models.CharField(default='INR', max_length=3)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Wallet',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('currency', models.CharField(default='INR', max_length=3)),
                ('balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('real_ratio', models.FloatField(default=0.0)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='wallets', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'currency'), name='uniq_wallet_user_currency'),
                    models.CheckConstraint(condition=models.Q(('balance__gte', 0)), name='wallet_balance_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='WalletTransaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=TRANSACTION_TYPES, db_index=True, max_length=32)),
                ('source', models.CharField(blank=True, choices=TRANSACTION_SOURCES, default='', max_length=16)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('currency', models.CharField(default='INR', max_length=3)),
                ('is_real', models.BooleanField(default=False)),
                ('balance_after', models.DecimalField(decimal_places=2, max_digits=12)),
                ('real_ratio_after', models.FloatField(default=0.0)),
                ('order_id', models.CharField(blank=True, db_index=True, default='', max_length=64)),
                ('payment_id', models.CharField(blank=True, default='', max_length=64)),
                ('coupon_code', models.CharField(blank=True, default='', max_length=64)),
                ('status', models.CharField(choices=TRANSACTION_STATUSES, db_index=True, default='COMPLETED', max_length=16)),
                ('meta', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='wallet_transactions', to=settings.AUTH_USER_MODEL)),
                ('wallet', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='accounts.wallet')),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['user', 'type'], name='wallet_tx_user_type_idx'),
                    models.Index(fields=['created_at'], name='wallet_tx_created_idx'),
                ],
            },
        ),
    ]
