# Votes unique per case-insensitive voter wallet

from django.db import migrations, models


def fill_voter_keys(apps, schema_editor):
    Vote = apps.get_model('reports', 'Vote')
    for vote in Vote.objects.only('id', 'voter_wallet').iterator():
        Vote.objects.filter(pk=vote.pk).update(voter_key=vote.voter_wallet.strip().lower())


class Migration(migrations.Migration):

    dependencies = [
        ('reports', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='vote',
            name='voter_key',
            field=models.CharField(default='', editable=False, max_length=100),
            preserve_default=False,
        ),
        migrations.RunPython(fill_voter_keys, migrations.RunPython.noop),
        migrations.RemoveConstraint(
            model_name='vote',
            name='unique_vote_per_voter',
        ),
        migrations.AddConstraint(
            model_name='vote',
            constraint=models.UniqueConstraint(fields=('report', 'voter_key'), name='unique_vote_per_voter'),
        ),
    ]
