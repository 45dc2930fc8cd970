import base64
import struct
from datetime import timedelta

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from chat.services import completion
from chat.services.errors import AllProvidersFailed
from dashboard.models import FeatureFlag
from tools.models import DocumentConversion, GenerationStatus, ImageGeneration, NewsAnalysis, ToolUsageLog
from tools.services import documents, images, transcription

PNG_BYTES = b"\x89PNG fake image"


def stub_image(monkeypatch, calls=None):
    def request_image(prompt, size):
        if calls is not None:
            calls.append((prompt, size))
        return base64.b64encode(PNG_BYTES).decode()

    monkeypatch.setattr(images, "request_image", request_image)


def test_generate_image(client, user, monkeypatch, settings):
    settings.OPENAI_API_KEY = "test-key"
    calls = []
    stub_image(monkeypatch, calls)

    resp = client.post("/api/tools/images/", data={"prompt": "a red bicycle", "aspect_ratio": "16:9"}, format="json")
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == GenerationStatus.COMPLETED
    assert data["public_url"].startswith("/media/generated-images/")
    assert data["file_size_bytes"] == len(PNG_BYTES)
    assert calls == [("a red bicycle", "1536x1024")]

    generation = ImageGeneration.objects.get(id=data["id"])
    with default_storage.open(generation.image_path) as fh:
        assert fh.read() == PNG_BYTES
    assert ToolUsageLog.objects.filter(user=user, tool_name=ToolUsageLog.TOOL_IMAGE, success=True).count() == 1

    listing = client.get("/api/tools/images/").json()
    assert listing["count"] == 1


def test_generate_image_without_key_is_unavailable(client):
    resp = client.post("/api/tools/images/", data={"prompt": "a red bicycle"}, format="json")
    assert resp.status_code == 503
    assert ImageGeneration.objects.count() == 0


def test_generate_image_vendor_failure_marks_record_failed(client, monkeypatch, settings):
    settings.OPENAI_API_KEY = "test-key"

    def reject(prompt, size):
        raise images.ImageGenerationError("OpenAI API error: 400 - content policy", status_code=400)

    monkeypatch.setattr(images, "request_image", reject)

    resp = client.post("/api/tools/images/", data={"prompt": "something"}, format="json")
    assert resp.status_code == 502
    body = resp.json()
    assert body["generation"]["status"] == GenerationStatus.FAILED
    assert "content policy" in body["generation"]["error_message"]
    assert ToolUsageLog.objects.filter(tool_name=ToolUsageLog.TOOL_IMAGE, success=False).count() == 1


def test_disabled_flag_blocks_generation_but_not_listing(client, monkeypatch, settings):
    settings.OPENAI_API_KEY = "test-key"
    stub_image(monkeypatch)
    FeatureFlag.objects.filter(key="image-generation").update(enabled=False)

    assert client.post("/api/tools/images/", data={"prompt": "a cat"}, format="json").status_code == 403
    assert client.get("/api/tools/images/").status_code == 200


def test_image_detail_is_owner_scoped(client, other_user):
    generation = ImageGeneration.objects.create(owner=other_user, prompt="theirs")
    assert client.get(f"/api/tools/images/{generation.id}/").status_code == 404


def test_generate_avatar_uses_style(client, monkeypatch, settings):
    settings.OPENAI_API_KEY = "test-key"
    calls = []
    stub_image(monkeypatch, calls)

    resp = client.post("/api/tools/avatars/", data={"prompt": "a friendly robot", "style": "pixel"}, format="json")
    assert resp.status_code == 201
    assert resp.json()["kind"] == ImageGeneration.KIND_AVATAR
    prompt, size = calls[0]
    assert "a friendly robot" in prompt
    assert "pixel art" in prompt
    assert size == "1024x1024"
    assert ToolUsageLog.objects.filter(tool_name=ToolUsageLog.TOOL_AVATAR).count() == 1


def upload(name, data):
    return SimpleUploadedFile(name, data, content_type="application/octet-stream")


def test_convert_text_to_docx(client, user):
    resp = client.post(
        "/api/tools/documents/",
        data={"file": upload("notes.txt", b"Hello\nWorld & friends"), "target_format": "docx"},
        format="multipart",
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["converted_file_name"] == "notes.docx"
    assert data["conversion"]["status"] == GenerationStatus.COMPLETED
    assert data["download_url"].endswith("converted.docx")

    conversion = DocumentConversion.objects.get(id=data["conversion"]["id"])
    assert conversion.original_file_path.endswith("original.txt")
    with default_storage.open(conversion.converted_file_path) as fh:
        text = documents.docx_to_txt(fh.read()).decode()
    assert text == "Hello\nWorld & friends"


def test_convert_unsupported_pair_fails_record(client, user):
    resp = client.post(
        "/api/tools/documents/",
        data={"file": upload("report.pdf", b"%PDF-1.4"), "target_format": "docx"},
        format="multipart",
    )
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Conversion failed")
    conversion = DocumentConversion.objects.get(owner=user)
    assert conversion.status == GenerationStatus.FAILED
    assert "not supported" in conversion.error_message
    assert ToolUsageLog.objects.filter(tool_name=ToolUsageLog.TOOL_DOCUMENT, success=False).exists()


def test_convert_malformed_png_fails_record(client, user):
    header = b"\x00" * 5
    malformed = b"\x89PNG\r\n\x1a\n" + struct.pack(">I", len(header)) + b"IHDR" + header + b"\x00" * 4
    resp = client.post(
        "/api/tools/documents/",
        data={"file": upload("pic.png", malformed), "target_format": "pdf"},
        format="multipart",
    )
    assert resp.status_code == 400
    conversion = DocumentConversion.objects.get(owner=user)
    assert conversion.status == GenerationStatus.FAILED
    assert "PNG header" in conversion.error_message
    assert ToolUsageLog.objects.filter(tool_name=ToolUsageLog.TOOL_DOCUMENT, success=False).count() == 1


def test_convert_unexpected_error_still_fails_record(client, user, monkeypatch):
    def explode(data):
        raise RuntimeError("disk on fire")

    monkeypatch.setitem(documents.CONVERTERS, ("txt", "pdf"), explode)
    resp = client.post(
        "/api/tools/documents/",
        data={"file": upload("notes.txt", b"hello"), "target_format": "pdf"},
        format="multipart",
    )
    assert resp.status_code == 400
    assert "disk on fire" in resp.json()["detail"]
    conversion = DocumentConversion.objects.get(owner=user)
    assert conversion.status == GenerationStatus.FAILED
    assert "disk on fire" in conversion.error_message
    assert ToolUsageLog.objects.filter(tool_name=ToolUsageLog.TOOL_DOCUMENT, success=False).count() == 1


def test_convert_rejects_oversized_upload(client, settings):
    settings.DOCUMENT_MAX_UPLOAD_BYTES = 5
    resp = client.post(
        "/api/tools/documents/",
        data={"file": upload("big.txt", b"more than five bytes"), "target_format": "pdf"},
        format="multipart",
    )
    assert resp.status_code == 400
    assert DocumentConversion.objects.count() == 0


def test_expired_conversions_are_hidden(client, user):
    DocumentConversion.objects.create(
        owner=user, original_file_name="old.txt", source_format="txt", target_format="pdf",
        expires_at=timezone.now() - timedelta(hours=1),
    )
    DocumentConversion.objects.create(owner=user, original_file_name="new.txt", source_format="txt", target_format="pdf")

    data = client.get("/api/tools/documents/").json()
    assert [row["original_file_name"] for row in data["results"]] == ["new.txt"]


ASSESSMENT = """Here is my assessment:
```json
{"credibility_score": 82, "bias_level": "Slight", "explanation": "Well sourced.",
 "sources": [{"title": "Reuters", "url": "https://reuters.com", "reliability": "High"}, "junk"]}
```"""


def test_news_analysis(client, user, monkeypatch):
    seen = {}

    def generate(messages, provider=None, history=None):
        seen["messages"] = messages
        return completion.Reply(text=ASSESSMENT, provider="claude")

    monkeypatch.setattr(completion, "generate_reply", generate)

    resp = client.post("/api/tools/news/", data={"content": "Scientists discover water on Mars."}, format="json")
    assert resp.status_code == 201
    data = resp.json()
    assert data["credibility_score"] == 82
    assert data["credibility_level"] == NewsAnalysis.LEVEL_HIGH
    assert data["provider"] == "claude"
    assert data["sources"] == [{"title": "Reuters", "url": "https://reuters.com", "reliability": "High"}]
    assert seen["messages"][0]["role"] == "system"
    assert ToolUsageLog.objects.filter(user=user, tool_name=ToolUsageLog.TOOL_NEWS, success=True).count() == 1


def test_news_analysis_requires_input(client):
    assert client.post("/api/tools/news/", data={}, format="json").status_code == 400


def test_news_analysis_bad_reply_is_bad_gateway(client, user, monkeypatch):
    monkeypatch.setattr(
        completion, "generate_reply",
        lambda messages, provider=None, history=None: completion.Reply(text="I cannot say.", provider="openai"),
    )
    resp = client.post("/api/tools/news/", data={"url": "https://example.com/story"}, format="json")
    assert resp.status_code == 502
    assert NewsAnalysis.objects.count() == 0
    assert ToolUsageLog.objects.filter(user=user, tool_name=ToolUsageLog.TOOL_NEWS, success=False).count() == 1


def test_news_analysis_provider_outage(client, monkeypatch):
    def outage(messages, provider=None, history=None):
        raise AllProvidersFailed("All providers failed", status_code=429)

    monkeypatch.setattr(completion, "generate_reply", outage)
    resp = client.post("/api/tools/news/", data={"content": "Breaking news"}, format="json")
    assert resp.status_code == 502
    assert "rate limiting" in resp.json()["detail"]


def test_usage_log_is_scoped_and_filterable(client, user, other_user):
    ToolUsageLog.record(user, ToolUsageLog.TOOL_IMAGE)
    ToolUsageLog.record(user, ToolUsageLog.TOOL_NEWS)
    ToolUsageLog.record(other_user, ToolUsageLog.TOOL_NEWS)

    assert client.get("/api/tools/usage/").json()["count"] == 2
    filtered = client.get(f"/api/tools/usage/?tool={ToolUsageLog.TOOL_NEWS}").json()
    assert [row["tool_name"] for row in filtered["results"]] == [ToolUsageLog.TOOL_NEWS]


def audio(name="memo.mp3", data=b"ID3 fake mp3", content_type="audio/mpeg"):
    return SimpleUploadedFile(name, data, content_type=content_type)


def test_transcribe_audio(client, user, monkeypatch, settings):
    settings.OPENAI_API_KEY = "test-key"
    calls = []

    def request_transcription(file_name, data, content_type):
        calls.append((file_name, data, content_type))
        return "Remember to buy milk.", 2.5

    monkeypatch.setattr(transcription, "request_transcription", request_transcription)

    resp = client.post("/api/tools/transcriptions/", data={"file": audio()}, format="multipart")
    assert resp.status_code == 200
    assert resp.json() == {"text": "Remember to buy milk.", "duration": 2.5, "model": "whisper-1"}
    assert calls == [("memo.mp3", b"ID3 fake mp3", "audio/mpeg")]

    log = ToolUsageLog.objects.get(user=user, tool_name=ToolUsageLog.TOOL_TRANSCRIPTION)
    assert log.success is True
    assert log.usage_data["duration"] == 2.5


def test_transcribe_rejects_unsupported_or_large_audio(client, monkeypatch, settings):
    settings.OPENAI_API_KEY = "test-key"
    monkeypatch.setattr(transcription, "request_transcription", lambda *args: ("never", None))

    bad_type = client.post(
        "/api/tools/transcriptions/", data={"file": audio("notes.txt", b"text", "text/plain")}, format="multipart"
    )
    assert bad_type.status_code == 400
    assert "Unsupported audio format" in bad_type.json()["detail"]

    settings.TRANSCRIPTION_MAX_UPLOAD_BYTES = 4
    too_big = client.post("/api/tools/transcriptions/", data={"file": audio()}, format="multipart")
    assert too_big.status_code == 400
    assert "too large" in too_big.json()["detail"]
    assert ToolUsageLog.objects.filter(tool_name=ToolUsageLog.TOOL_TRANSCRIPTION).count() == 0


def test_transcribe_without_key_is_unavailable(client):
    resp = client.post("/api/tools/transcriptions/", data={"file": audio()}, format="multipart")
    assert resp.status_code == 503


def test_transcribe_vendor_failure_is_bad_gateway(client, user, monkeypatch, settings):
    settings.OPENAI_API_KEY = "test-key"

    def reject(file_name, data, content_type):
        raise transcription.TranscriptionError("OpenAI API error: 400 - Invalid file format.", status_code=400)

    monkeypatch.setattr(transcription, "request_transcription", reject)

    resp = client.post("/api/tools/transcriptions/", data={"file": audio()}, format="multipart")
    assert resp.status_code == 502
    assert "Invalid file format" in resp.json()["detail"]
    log = ToolUsageLog.objects.get(user=user, tool_name=ToolUsageLog.TOOL_TRANSCRIPTION)
    assert log.success is False


def test_transcription_flag_blocks_requests(client, settings):
    settings.OPENAI_API_KEY = "test-key"
    FeatureFlag.objects.filter(key=ToolUsageLog.TOOL_TRANSCRIPTION).update(enabled=False)
    assert client.post("/api/tools/transcriptions/", data={"file": audio()}, format="multipart").status_code == 403
