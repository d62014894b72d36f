import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


ORDER_TYPES = [
    ('ON_DEMAND_CONSULTATION', 'On-demand consultation'),
    ('PRODUCT', 'Product'),
    ('DIGITAL_PRODUCT', 'Digital product'),
    ('WEBINAR', 'Webinar'),
]

ORDER_STATUSES = [
    ('CREATED', 'Created'),
    ('PAID', 'Paid'),
    ('CANCELLED', 'Cancelled'),
    ('REFUNDED', 'Refunded'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_type', models.CharField(choices=ORDER_TYPES, db_index=True, max_length=32)),
                ('category', models.CharField(blank=True, db_index=True, default='', max_length=100)),
                ('currency', models.CharField(default='INR', max_length=3)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('status', models.CharField(choices=ORDER_STATUSES, db_index=True, default='CREATED', max_length=16)),
                ('coupon_code', models.CharField(blank=True, default='', max_length=64)),
                ('discount', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('gateway_amount', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('wallet_deduction', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('real_ratio', models.FloatField(blank=True, null=True)),
                ('effective_real_amount', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('platform_fee_percent', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('platform_fee', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('expert_earnings', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('expert', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='expert_orders', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['user', 'status'], name='order_user_status_idx'),
                    models.Index(fields=['expert', 'status'], name='order_expert_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderLineItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(blank=True, default='', max_length=64)),
                ('sku', models.CharField(blank=True, default='', max_length=64)),
                ('product_name', models.CharField(blank=True, default='', max_length=255)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('unit_price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('shipping_cost', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('line_total', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('is_white_label', models.BooleanField(default=False)),
                ('shipping_mode', models.CharField(choices=[('PLATFORM', 'Platform'), ('SELF', 'Self')], default='SELF', max_length=16)),
                ('category', models.CharField(blank=True, default='', max_length=100)),
                ('discount_amount', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('platform_fee_percent', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('platform_fee_amount', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('expert_earnings', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='market.order')),
            ],
            options={
                'ordering': ['id'],
            },
        ),
    ]
