import django.core.validators
import django.db.models.deletion
import preferences.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PriorityPreferences',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('focus', models.CharField(choices=[('Deadlines', 'Deadlines'), ('Importance', 'Importance'), ('Categories', 'Categories'), ('Balanced', 'Balanced')], default='Balanced', help_text='Primary prioritization strategy.', max_length=20)),
                ('urgency_threshold_preset', models.CharField(blank=True, choices=[('1 day', '1 day'), ('3 days', '3 days'), ('1 week', '1 week')], help_text='Deadline window treated as urgent (Deadlines focus).', max_length=10, null=True)),
                ('importance_aspect_preset', models.CharField(blank=True, choices=[('Work/Career', 'Work/Career'), ('Affecting Others', 'Affecting Others'), ('High Stakes', 'High Stakes')], help_text='What counts as important (Importance focus).', max_length=20, null=True)),
                ('preferred_categories', models.JSONField(blank=True, default=list, help_text='Up to three categories to favour (Categories focus).')),
                ('custom_keywords', models.JSONField(blank=True, default=preferences.models.default_custom_keywords, help_text='Keywords the AI should treat as priority hints.')),
                ('urgency_weight', models.FloatField(default=0.4, validators=[django.core.validators.MinValueValidator(0.0), django.core.validators.MaxValueValidator(1.0)])),
                ('importance_weight', models.FloatField(default=0.6, validators=[django.core.validators.MinValueValidator(0.0), django.core.validators.MaxValueValidator(1.0)])),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='priority_preferences', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Priority Preferences',
                'verbose_name_plural': 'Priority Preferences',
            },
        ),
        migrations.CreateModel(
            name='AppSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('selected_ai_model', models.CharField(default='googleai/gemini-1.5-flash-latest', max_length=100)),
                ('api_key', models.CharField(blank=True, default='', help_text='Key for the selected AI provider. Falls back to the server environment.', max_length=255)),
                ('openai_api_key', models.CharField(blank=True, default='', help_text='OpenAI key used for voice transcription.', max_length=255)),
                ('webhook_url', models.URLField(blank=True, default='', help_text='Outbound task events are POSTed here.', max_length=500)),
                ('incoming_webhook_header_name', models.CharField(default='X-TaskHook-Secret', max_length=100)),
                ('incoming_webhook_secret', models.CharField(blank=True, default='', max_length=255)),
                ('disable_incoming_webhook_auth', models.BooleanField(default=False)),
                ('confirm_task_creation', models.BooleanField(default=False)),
                ('last_batch_ai_cost', models.FloatField(default=0.0, help_text='AI cost of the most recent bulk re-prioritization (USD).')),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='app_settings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'App Settings',
                'verbose_name_plural': 'App Settings',
            },
        ),
    ]
