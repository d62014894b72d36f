import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PlatformFeeConfig',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('default_fee_percent', models.DecimalField(decimal_places=2, default=Decimal('10.00'), max_digits=5)),
                ('fee_by_type', models.JSONField(blank=True, default=dict, help_text='e.g., {"ON_DEMAND_CONSULTATION": 10, "PRODUCT": 15}')),
                ('fee_by_category', models.JSONField(blank=True, default=dict, help_text='e.g., {"HOROSCOPE": 10, "TAROT": 12}')),
                ('effective_from', models.DateTimeField(default=django.utils.timezone.now)),
                ('effective_until', models.DateTimeField(blank=True, null=True)),
                ('notes', models.CharField(blank=True, default='', max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('expert', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='platform_fee_configs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Platform Fee Config',
                'verbose_name_plural': 'Platform Fee Configs',
                'ordering': ['-effective_from', '-id'],
                'indexes': [
                    models.Index(fields=['expert', 'effective_from'], name='fee_config_expert_from_idx'),
                ],
            },
        ),
    ]
