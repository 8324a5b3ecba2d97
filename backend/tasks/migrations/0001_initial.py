import django.db.models.deletion
import django.utils.timezone
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Task',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255, verbose_name='title')),
                ('description', models.TextField(blank=True, verbose_name='description')),
                ('due_date', models.DateTimeField(default=django.utils.timezone.now, help_text='The deadline for the task.', verbose_name='due date')),
                ('priority', models.CharField(choices=[('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High')], default='Medium', help_text='Displayed priority: user-set, or mapped from the combined score after AI processing.', max_length=10, verbose_name='priority')),
                ('status', models.CharField(choices=[('Pending', 'Pending'), ('Completed', 'Completed')], default='Pending', max_length=10, verbose_name='status')),
                ('category', models.CharField(choices=[('Work', 'Work'), ('Personal', 'Personal'), ('Learning', 'Learning'), ('Health', 'Health'), ('Finance', 'Finance'), ('Home Chores', 'Home Chores'), ('Errands', 'Errands'), ('Other', 'Other')], default='Other', max_length=20, verbose_name='category')),
                ('tags', models.JSONField(blank=True, default=list, verbose_name='tags')),
                ('instructions', models.TextField(blank=True, help_text='Free-text notes, usually pushed in by the automation webhook.', null=True, verbose_name='instructions')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='created at')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='completed at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('has_ai_data', models.BooleanField(default=False, help_text='Flag indicating the ai_* columns hold a prioritization result.', verbose_name='has AI data')),
                ('ai_priority_score', models.PositiveSmallIntegerField(default=0, verbose_name='AI priority score')),
                ('ai_reasoning', models.TextField(blank=True, verbose_name='AI reasoning')),
                ('ai_suggested_action', models.TextField(blank=True, verbose_name='AI suggested action')),
                ('combined_score', models.PositiveSmallIntegerField(default=0, help_text='Ranking ordinal (0-11) from user priority, due date and AI score.', verbose_name='combined score')),
                ('is_vague', models.BooleanField(default=False, verbose_name='is vague')),
                ('last_operation_cost', models.FloatField(default=0.0, verbose_name='last AI operation cost (USD)')),
                ('input_tokens', models.PositiveIntegerField(default=0, verbose_name='input tokens')),
                ('output_tokens', models.PositiveIntegerField(default=0, verbose_name='output tokens')),
                ('total_ai_cost', models.FloatField(default=0.0, help_text='Cumulative AI spend on this task. Never decreases.', verbose_name='total AI cost (USD)')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tasks', to=settings.AUTH_USER_MODEL, verbose_name='user')),
            ],
            options={
                'verbose_name': 'Task',
                'verbose_name_plural': 'Tasks',
                'ordering': ['due_date', '-created_at'],
            },
        ),
    ]
