from django.db import migrations


def seed_flag(apps, schema_editor):
    FeatureFlag = apps.get_model("dashboard", "FeatureFlag")
    FeatureFlag.objects.get_or_create(
        key="audio-transcription",
        defaults={
            "name": "Audio Transcription",
            "description": "Enable speech-to-text for uploaded audio",
            "category": "Features",
            "enabled": True,
        },
    )


def unseed_flag(apps, schema_editor):
    FeatureFlag = apps.get_model("dashboard", "FeatureFlag")
    FeatureFlag.objects.filter(key="audio-transcription").delete()


class Migration(migrations.Migration):
    dependencies = [
        ("dashboard", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_flag, unseed_flag),
    ]
