import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Dispute',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('split_id', models.UUIDField(db_index=True, help_text='Disputed split (owned by the splits collaborator)')),
                ('raised_by', models.CharField(db_index=True, help_text='Wallet address of the party that opened the dispute', max_length=256)),
                ('dispute_type', models.CharField(choices=[('incorrect_amount', 'Incorrect Amount'), ('missing_payment', 'Missing Payment'), ('wrong_items', 'Wrong Items'), ('other', 'Other')], max_length=20)),
                ('description', models.TextField(max_length=5000)),
                ('status', models.CharField(choices=[('open', 'Open'), ('under_review', 'Under Review'), ('resolved', 'Resolved'), ('rejected', 'Rejected'), ('appealed', 'Appealed')], db_index=True, default='open', max_length=20)),
                ('evidence', models.JSONField(blank=True, null=True)),
                ('resolution', models.JSONField(blank=True, null=True)),
                ('resolved_by', models.CharField(blank=True, help_text='Resolver wallet address or system identifier', max_length=256, null=True)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('appeal_reason', models.TextField(blank=True, max_length=5000, null=True)),
                ('appeal_count', models.PositiveIntegerField(default=0, help_text='Times this dispute has been appealed')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('appealed_from', models.ForeignKey(blank=True, help_text='Dispute this one appeals', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='appeals', to='disputes.dispute')),
            ],
            options={
                'verbose_name': 'Dispute',
                'verbose_name_plural': 'Disputes',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['split_id', 'status'], name='dispute_split_status_idx'),
                    models.Index(fields=['raised_by', 'status'], name='dispute_raiser_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'open')), fields=('split_id',), name='unique_open_dispute_per_split'),
                    models.CheckConstraint(condition=models.Q(('appeal_count__lte', 2)), name='appeal_count_within_limit'),
                    models.CheckConstraint(condition=models.Q(models.Q(('resolution__isnull', True), ('resolved_by__isnull', True), ('resolved_at__isnull', True)), models.Q(('resolution__isnull', False), ('resolved_by__isnull', False), ('resolved_at__isnull', False)), _connector='OR'), name='resolution_fields_set_together'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DisputeStatusLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('from_status', models.CharField(blank=True, max_length=20)),
                ('to_status', models.CharField(max_length=20)),
                ('changed_by', models.CharField(blank=True, max_length=256)),
                ('reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('dispute', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='status_logs', to='disputes.dispute')),
            ],
            options={
                'verbose_name': 'Dispute Status Log',
                'verbose_name_plural': 'Dispute Status Logs',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['dispute', 'created_at'], name='dispute_log_created_idx'),
                ],
            },
        ),
    ]
