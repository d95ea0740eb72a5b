# Generated manually
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('sales', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='salesorder',
            name='stock_deducted',
            field=models.BooleanField(default=False),
        ),
    ]
