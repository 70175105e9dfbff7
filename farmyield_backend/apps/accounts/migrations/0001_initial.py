# Initial wallet user and badge models

from decimal import Decimal
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='WalletUser',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('wallet_address', models.CharField(db_index=True, max_length=100, unique=True)),
                ('username', models.CharField(blank=True, max_length=100)),
                ('total_reports', models.PositiveIntegerField(default=0)),
                ('verified_reports', models.PositiveIntegerField(default=0)),
                ('total_earned', models.DecimalField(decimal_places=9, default=Decimal('0'), help_text='Total native-token rewards earned', max_digits=20)),
                ('reputation_score', models.PositiveIntegerField(default=0, help_text='round(verified_reports / total_reports * 100)')),
                ('district', models.CharField(blank=True, max_length=100)),
                ('province', models.CharField(blank=True, max_length=100)),
                ('joined_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('last_active', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'wallet_users',
                'ordering': ['-joined_at'],
                'indexes': [models.Index(fields=['-reputation_score'], name='wallet_user_reputation_idx')],
            },
        ),
        migrations.CreateModel(
            name='Badge',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('badge_type', models.CharField(choices=[('first_report', 'First Report'), ('verified_10', '10 Verified Reports'), ('top_contributor', 'Top Contributor')], max_length=30)),
                ('earned_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('mint_reference', models.CharField(blank=True, help_text='Badge NFT mint transaction, empty if minting failed', max_length=120, null=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='badges', to='accounts.walletuser')),
            ],
            options={
                'db_table': 'wallet_badges',
                'ordering': ['earned_at'],
                'constraints': [models.UniqueConstraint(fields=('user', 'badge_type'), name='unique_badge_type_per_user')],
            },
        ),
    ]
