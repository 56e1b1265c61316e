import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Split',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('total_amount', models.DecimalField(decimal_places=6, max_digits=18, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('currency', models.CharField(default='XLM', max_length=12)),
                ('creator', models.CharField(help_text='Wallet address of the split creator', max_length=256)),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed')], db_index=True, default='active', max_length=20)),
                ('is_frozen', models.BooleanField(db_index=True, default=False)),
                ('frozen_by_dispute_id', models.UUIDField(blank=True, help_text='Dispute currently holding the freeze', null=True)),
                ('frozen_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Split',
                'verbose_name_plural': 'Splits',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='SplitParticipant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('wallet_address', models.CharField(db_index=True, max_length=256)),
                ('name', models.CharField(blank=True, max_length=100)),
                ('amount_owed', models.DecimalField(decimal_places=6, default=Decimal('0'), max_digits=18, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('status', models.CharField(choices=[('paid', 'Paid'), ('pending', 'Pending')], default='pending', max_length=20)),
                ('split', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='participants', to='splits.split')),
            ],
            options={
                'verbose_name': 'Split Participant',
                'verbose_name_plural': 'Split Participants',
                'ordering': ['wallet_address'],
                'constraints': [models.UniqueConstraint(fields=('split', 'wallet_address'), name='unique_participant_per_split')],
            },
        ),
    ]
