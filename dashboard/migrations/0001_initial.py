from django.db import migrations, models


DEFAULT_FLAGS = [
    ("video-generation", "Video Generation", "Enable AI video generation feature", "Features", True),
    ("fake-news-detection", "Fake News Detection", "Enable news credibility analysis", "Features", True),
    ("image-generation", "Image Generation", "Enable AI image generation", "Features", True),
    ("avatar-generation", "Avatar Generation", "Enable AI avatar generation", "Features", True),
    ("document-converter", "Document Converter", "Enable document format conversion", "Features", True),
    ("file-upload", "File Upload", "Allow users to upload files in chat", "Features", True),
    ("gpt4-access", "GPT-4 Access", "Enable GPT-4 model for premium users", "Models", True),
    ("deepseek-v3", "DeepSeek V3", "Enable DeepSeek V3 model access", "Models", False),
    ("increased-limits", "Increased Limits", "Higher rate limits for all users", "Limits", False),
]


def seed_flags(apps, schema_editor):
    FeatureFlag = apps.get_model("dashboard", "FeatureFlag")
    for key, name, description, category, enabled in DEFAULT_FLAGS:
        FeatureFlag.objects.get_or_create(
            key=key,
            defaults={"name": name, "description": description, "category": category, "enabled": enabled},
        )


def unseed_flags(apps, schema_editor):
    FeatureFlag = apps.get_model("dashboard", "FeatureFlag")
    FeatureFlag.objects.filter(key__in=[row[0] for row in DEFAULT_FLAGS]).delete()


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="FeatureFlag",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.SlugField(unique=True)),
                ("name", models.CharField(max_length=100)),
                ("description", models.CharField(blank=True, max_length=255)),
                (
                    "category",
                    models.CharField(
                        choices=[("Features", "Features"), ("Models", "Models"), ("Limits", "Limits")],
                        default="Features",
                        max_length=10,
                    ),
                ),
                ("enabled", models.BooleanField(default=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["category", "key"]},
        ),
        migrations.RunPython(seed_flags, unseed_flags),
    ]
