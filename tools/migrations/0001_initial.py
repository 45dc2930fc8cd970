from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import tools.models


STATUS_CHOICES = [
    ("pending", "Pending"),
    ("processing", "Processing"),
    ("completed", "Completed"),
    ("failed", "Failed"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("chat", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ImageGeneration",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=STATUS_CHOICES, default="pending", max_length=12)),
                ("error_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("kind", models.CharField(choices=[("image", "Image"), ("avatar", "Avatar")], default="image", max_length=10)),
                ("prompt", models.TextField()),
                ("style", models.CharField(blank=True, max_length=50)),
                ("aspect_ratio", models.CharField(default="1:1", max_length=5)),
                ("model_used", models.CharField(blank=True, max_length=50)),
                ("image_path", models.CharField(blank=True, max_length=300)),
                ("public_url", models.CharField(blank=True, max_length=500)),
                ("generation_time_ms", models.PositiveIntegerField(blank=True, null=True)),
                ("file_size_bytes", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "conversation",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="image_generations",
                        to="chat.conversation",
                    ),
                ),
                (
                    "message",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="image_generations",
                        to="chat.message",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="image_generations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="DocumentConversion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=STATUS_CHOICES, default="pending", max_length=12)),
                ("error_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("original_file_name", models.CharField(max_length=255)),
                ("original_file_path", models.CharField(blank=True, max_length=300)),
                ("source_format", models.CharField(max_length=10)),
                ("target_format", models.CharField(max_length=10)),
                ("converted_file_path", models.CharField(blank=True, max_length=300)),
                ("expires_at", models.DateTimeField(default=tools.models.default_expiry)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="document_conversions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="NewsAnalysis",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("content", models.TextField(blank=True)),
                ("source_url", models.URLField(blank=True, max_length=500)),
                ("credibility_score", models.PositiveSmallIntegerField()),
                (
                    "credibility_level",
                    models.CharField(
                        choices=[("High", "High"), ("Medium", "Medium"), ("Low", "Low"), ("Very Low", "Very Low")],
                        max_length=10,
                    ),
                ),
                ("bias_level", models.CharField(blank=True, max_length=20)),
                ("explanation", models.TextField(blank=True)),
                ("sources", models.JSONField(blank=True, default=list)),
                ("provider", models.CharField(blank=True, max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="news_analyses",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"], "verbose_name_plural": "news analyses"},
        ),
        migrations.CreateModel(
            name="ToolUsageLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("tool_name", models.CharField(max_length=50)),
                ("usage_data", models.JSONField(blank=True, default=dict)),
                ("success", models.BooleanField(default=True)),
                ("error_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tool_usage_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.AddIndex(
            model_name="imagegeneration",
            index=models.Index(fields=["owner", "created_at"], name="tools_img_owner_created_idx"),
        ),
        migrations.AddIndex(
            model_name="documentconversion",
            index=models.Index(fields=["owner", "created_at"], name="tools_doc_owner_created_idx"),
        ),
        migrations.AddIndex(
            model_name="toolusagelog",
            index=models.Index(fields=["user", "tool_name", "created_at"], name="tools_usage_user_tool_idx"),
        ),
    ]
