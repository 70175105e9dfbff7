# Initial report and vote ledger models

import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Report',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('report_id', models.CharField(db_index=True, editable=False, max_length=30, unique=True)),
                ('owner_wallet', models.CharField(db_index=True, max_length=100)),
                ('crop_type', models.CharField(db_index=True, max_length=50)),
                ('quantity_value', models.DecimalField(decimal_places=3, max_digits=14, validators=[django.core.validators.MinValueValidator(0)])),
                ('quantity_unit', models.CharField(default='kg', max_length=20)),
                ('latitude', models.FloatField(validators=[django.core.validators.MinValueValidator(-90), django.core.validators.MaxValueValidator(90)])),
                ('longitude', models.FloatField(validators=[django.core.validators.MinValueValidator(-180), django.core.validators.MaxValueValidator(180)])),
                ('district', models.CharField(blank=True, max_length=100)),
                ('province', models.CharField(blank=True, db_index=True, max_length=100)),
                ('village', models.CharField(blank=True, max_length=100)),
                ('images', models.JSONField(blank=True, default=list, help_text='[{"ipfs_hash": ..., "url": ..., "uploaded_at": ...}]')),
                ('soil_type', models.CharField(blank=True, max_length=50)),
                ('irrigation', models.CharField(blank=True, max_length=50)),
                ('harvest_date', models.DateField(blank=True, null=True)),
                ('market_price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('verified', 'Verified'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=20)),
                ('approve_votes', models.PositiveIntegerField(default=0)),
                ('reject_votes', models.PositiveIntegerField(default=0)),
                ('voters', models.JSONField(blank=True, default=list, help_text='[{"wallet": ..., "vote": ..., "voted_at": ...}]')),
                ('verified_by', models.CharField(blank=True, max_length=100, null=True)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.CharField(blank=True, max_length=255)),
                ('mint_tx_signature', models.CharField(blank=True, max_length=120, null=True)),
                ('tree_address', models.CharField(blank=True, max_length=120, null=True)),
                ('reward_tx_signature', models.CharField(blank=True, max_length=120, null=True)),
                ('reward_amount', models.DecimalField(blank=True, decimal_places=9, max_digits=20, null=True)),
                ('reputation_applied_at', models.DateTimeField(blank=True, null=True)),
                ('reward_claimed_at', models.DateTimeField(blank=True, null=True)),
                ('mint_claimed_at', models.DateTimeField(blank=True, null=True)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'crop_reports',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', '-created_at'], name='report_status_created_idx'),
                    models.Index(fields=['province', 'district', 'crop_type'], name='report_region_crop_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Vote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('voter_wallet', models.CharField(db_index=True, max_length=100)),
                ('vote', models.CharField(choices=[('approve', 'Approve'), ('reject', 'Reject')], max_length=10)),
                ('comment', models.TextField(blank=True)),
                ('tx_signature', models.CharField(blank=True, max_length=120, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('report', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='votes', to='reports.report')),
            ],
            options={
                'db_table': 'report_votes',
                'ordering': ['created_at'],
                'constraints': [models.UniqueConstraint(fields=('report', 'voter_wallet'), name='unique_vote_per_voter')],
            },
        ),
    ]
