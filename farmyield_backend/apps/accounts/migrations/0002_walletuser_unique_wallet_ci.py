# One user per wallet regardless of letter case

from django.db import migrations, models
import django.db.models.functions.text


class Migration(migrations.Migration):

    dependencies = [
        ('accounts', '0001_initial'),
    ]

    operations = [
        migrations.AddConstraint(
            model_name='walletuser',
            constraint=models.UniqueConstraint(
                django.db.models.functions.text.Lower('wallet_address'),
                name='unique_wallet_address_ci'
            ),
        ),
    ]
