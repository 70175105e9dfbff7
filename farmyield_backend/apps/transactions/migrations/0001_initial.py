# Initial chain transaction ledger

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('reports', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ChainTransaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tx_signature', models.CharField(db_index=True, max_length=120, unique=True)),
                ('tx_type', models.CharField(choices=[('mint_cnft', 'Report NFT Mint'), ('reward', 'Verification Reward'), ('vote', 'Vote'), ('badge', 'Badge Mint'), ('unknown', 'Unknown')], default='unknown', max_length=20)),
                ('from_wallet', models.CharField(blank=True, max_length=100, null=True)),
                ('to_wallet', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('amount', models.DecimalField(blank=True, decimal_places=9, help_text='Native-token amount', max_digits=20, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('failed', 'Failed')], default='pending', max_length=20)),
                ('block_time', models.DateTimeField(blank=True, null=True)),
                ('slot', models.BigIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('report', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transactions', to='reports.report')),
            ],
            options={
                'db_table': 'chain_transactions',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['from_wallet', '-created_at'], name='chain_tx_from_idx'),
                    models.Index(fields=['to_wallet', '-created_at'], name='chain_tx_to_idx'),
                    models.Index(fields=['tx_type', 'status'], name='chain_tx_type_status_idx'),
                ],
            },
        ),
    ]
