import io
import struct
import zlib
from types import SimpleNamespace

import pypdf
import pytest
from openai import OpenAIError

from chat.services import completion, gemini, intent, providers
from chat.services.errors import AllProvidersFailed, ProviderError, describe_vendor_error
from dashboard.models import FeatureFlag
from tools.services import documents, news, pdf


class FakeProvider:
    def __init__(self, name, reply=None, chunks=None, error=None, configured=True):
        self.name = name
        self.reply = reply
        self.chunks = chunks or []
        self.error = error
        self.configured = configured
        self.calls = []

    def is_configured(self):
        return self.configured

    def complete(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return providers.Completion(text=self.reply, usage={"total_tokens": 3})

    def stream(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        yield from self.chunks


def install(monkeypatch, *fakes):
    for fake in fakes:
        monkeypatch.setitem(providers.REGISTRY, fake.name, fake)


def user_turn(text):
    return [{"role": "user", "content": text}]


def test_select_provider_routes_by_content():
    assert completion.select_provider(user_turn("Explain this algorithm to me")) == "claude"
    assert completion.select_provider(user_turn("hello there")) == "openai"
    assert completion.select_provider(user_turn("funny " * 20)) == "grok"
    assert completion.select_provider(user_turn("z " * 80)) == "claude"


def test_provider_order_puts_primary_first():
    assert completion.provider_order("grok") == ["grok", "claude", "openai", "gemini", "deepseek"]
    assert completion.provider_order(None) == list(providers.PROVIDER_ORDER)


def test_prepare_context_keeps_recent_messages_and_truncates_history():
    messages = [{"role": "user", "content": f"m{i}"} for i in range(20)]
    history = [{"role": "assistant", "content": "h" * 1000} for _ in range(8)]

    context = completion.prepare_context(messages, history)
    assert len(context) == completion.MAX_HISTORY_MESSAGES + completion.MAX_CONTEXT_MESSAGES
    assert all(len(m["content"]) == completion.HISTORY_TRUNCATE_CHARS for m in context[:5])
    assert context[-1]["content"] == "m19"


def test_persona_is_added_once():
    prepared = completion.build_messages(user_turn("hi"))
    assert prepared[0]["role"] == "system"
    assert completion.ASSISTANT_NAME in prepared[0]["content"]

    custom = [{"role": "system", "content": "Be terse."}, *user_turn("hi")]
    assert completion.build_messages(custom)[0]["content"] == "Be terse."


def test_generate_reply_falls_back_to_next_provider(monkeypatch):
    claude = FakeProvider("claude", error=ProviderError("boom", status_code=500, provider="claude"))
    openai = FakeProvider("openai", reply="from openai")
    install(monkeypatch, claude, openai)

    reply = completion.generate_reply(user_turn("Hello"), provider="claude")
    assert reply.provider == "openai"
    assert reply.text == "from openai"
    assert len(claude.calls) == 1


def test_generate_reply_skips_unconfigured_providers(monkeypatch):
    claude = FakeProvider("claude", reply="never", configured=False)
    gem = FakeProvider("gemini", reply="from gemini")
    install(monkeypatch, claude, gem)

    reply = completion.generate_reply(user_turn("Hello"), provider="claude")
    assert reply.provider == "gemini"
    assert claude.calls == []


def test_generate_reply_without_configured_providers():
    with pytest.raises(AllProvidersFailed) as excinfo:
        completion.generate_reply(user_turn("Hello"))
    assert "No AI providers are configured" in str(excinfo.value)


def test_generate_reply_reports_last_error(monkeypatch):
    install(
        monkeypatch,
        FakeProvider("claude", error=ProviderError("c", status_code=500, provider="claude")),
        FakeProvider("openai", error=ProviderError("o", status_code=429, provider="openai")),
    )
    with pytest.raises(AllProvidersFailed) as excinfo:
        completion.generate_reply(user_turn("Hello"), provider="claude")
    assert excinfo.value.status_code == 429
    assert excinfo.value.provider == "openai"


def test_stream_reply_commits_after_first_chunk(monkeypatch):
    install(
        monkeypatch,
        FakeProvider("claude", error=ProviderError("down", provider="claude")),
        FakeProvider("openai", chunks=[]),
        FakeProvider("grok", chunks=["Hel", "lo"]),
    )
    name, chunks = completion.stream_reply(user_turn("Hello"), provider="claude")
    assert name == "grok"
    assert list(chunks) == ["Hel", "lo"]


@pytest.mark.parametrize(
    "status_code, expected",
    [
        (401, "credentials"),
        (429, "rate limiting"),
        (502, "temporarily unavailable"),
        (400, "could not process"),
    ],
)
def test_describe_vendor_error(status_code, expected):
    assert expected in describe_vendor_error(ProviderError("raw", status_code=status_code))


def test_describe_vendor_error_without_status_uses_message():
    assert describe_vendor_error(ProviderError("connection reset")) == "connection reset"


def test_openai_stream_interruption_becomes_provider_error(monkeypatch):
    def create(messages, stream):
        yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content="Hel"))])
        raise OpenAIError("stream reset by peer")

    provider = providers.OpenAIProvider()
    monkeypatch.setattr(provider, "_create", create)
    chunks = provider.stream(user_turn("Hi"))

    assert next(chunks) == "Hel"
    with pytest.raises(ProviderError) as excinfo:
        next(chunks)
    assert excinfo.value.provider == "openai"
    assert "stream reset by peer" in str(excinfo.value)


def test_deepseek_needs_key_and_flag(db, settings):
    deepseek = providers.get_provider("deepseek")
    assert deepseek.is_configured() is False

    settings.DEEPSEEK_API_KEY = "ds-key"
    assert deepseek.is_configured() is False

    FeatureFlag.objects.filter(key="deepseek-v3").update(enabled=True)
    assert deepseek.is_configured() is True
    assert deepseek._base_url() == settings.DEEPSEEK_BASE_URL


def test_disabled_deepseek_is_skipped_in_fallback(db, settings, monkeypatch):
    settings.DEEPSEEK_API_KEY = "ds-key"
    gem = FakeProvider("gemini", reply="from gemini")
    install(monkeypatch, gem)

    reply = completion.generate_reply(user_turn("Hello"), provider="deepseek")
    assert reply.provider == "gemini"


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = "Unauthorized" if status_code == 401 else "OK"
        self._payload = payload or {}

    def json(self):
        return self._payload


def test_claude_provider_sends_system_prompt_separately(monkeypatch, settings):
    settings.ANTHROPIC_API_KEY = "anthropic-key"
    sent = {}

    def post(url, headers, json, timeout, stream):
        sent.update(url=url, headers=headers, json=json)
        return FakeResponse(200, {"content": [{"type": "text", "text": " Hi! "}], "usage": {"output_tokens": 2}})

    monkeypatch.setattr(providers.requests, "post", post)
    result = providers.ClaudeProvider().complete(
        [{"role": "system", "content": "Be kind."}, {"role": "user", "content": "Hello"}]
    )

    assert result.text == "Hi!"
    assert result.usage == {"output_tokens": 2}
    assert sent["headers"]["x-api-key"] == "anthropic-key"
    assert sent["json"]["system"] == "Be kind."
    assert sent["json"]["messages"] == [{"role": "user", "content": "Hello"}]


def test_claude_provider_maps_http_errors(monkeypatch, settings):
    settings.ANTHROPIC_API_KEY = "anthropic-key"
    monkeypatch.setattr(providers.requests, "post", lambda *args, **kwargs: FakeResponse(401))

    with pytest.raises(ProviderError) as excinfo:
        providers.ClaudeProvider().complete(user_turn("Hello"))
    assert excinfo.value.status_code == 401
    assert excinfo.value.provider == "claude"


def test_get_provider_rejects_unknown_name():
    with pytest.raises(ProviderError):
        providers.get_provider("stability")


def test_to_gemini_messages_maps_roles():
    contents = gemini.to_gemini_messages([
        {"role": "system", "content": "Rules"},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
    ])
    assert [c["role"] for c in contents] == ["user", "user", "model"]
    assert contents[2]["parts"] == ["Hello"]


def test_image_intent_extracts_prompt():
    detected = intent.analyze_message("Please generate an image of a lighthouse at dusk")
    assert detected.has_image_intent is True
    assert detected.confidence == 0.9
    assert detected.image_prompt == "a lighthouse at dusk"

    drawn = intent.analyze_message("Can you draw me a castle in the clouds")
    assert drawn.image_prompt == "a castle in the clouds"


def test_image_intent_low_confidence_and_absent():
    vague = intent.analyze_message("I need a quick sketch")
    assert vague.has_image_intent is True
    assert vague.confidence == 0.5
    assert vague.image_prompt == "I need a quick sketch"

    plain = intent.analyze_message("What's the weather like today?")
    assert plain.has_image_intent is False
    assert plain.image_prompt is None


@pytest.mark.parametrize(
    "score, level",
    [(100, "High"), (75, "High"), (74, "Medium"), (50, "Medium"), (49, "Low"), (25, "Low"), (24, "Very Low"), (0, "Very Low")],
)
def test_credibility_level_thresholds(score, level):
    assert news.credibility_level(score) == level


def test_parse_assessment_clamps_and_filters():
    parsed = news.parse_assessment('Sure! {"credibility_score": 140.4, "sources": ["x", {"title": "AP"}]} Done.')
    assert parsed["credibility_score"] == 100
    assert parsed["sources"] == [{"title": "AP"}]
    assert parsed["bias_level"] == ""


def test_parse_assessment_rejects_bad_replies():
    with pytest.raises(news.NewsAnalysisError):
        news.parse_assessment("no json here")
    with pytest.raises(news.NewsAnalysisError):
        news.parse_assessment('{"explanation": "missing score"}')


def test_text_to_pdf_paginates_and_is_readable():
    body = "Hello (PDF) world\n" + "\n".join(f"line {i}" for i in range(120))
    data = pdf.text_to_pdf(body)

    assert data.startswith(b"%PDF-1.4")
    assert data.rstrip().endswith(b"%%EOF")
    reader = pypdf.PdfReader(io.BytesIO(data))
    assert len(reader.pages) == 3
    assert "Hello (PDF) world" in documents.pdf_to_txt(data).decode()


def test_text_to_pdf_encodes_smart_punctuation_as_windows_1252():
    data = pdf.text_to_pdf("“quoted” — €5")
    assert b"(\x93quoted\x94 \x97 \x805) Tj" in data


def png_bytes(width, height, bit_depth=8, color_type=2):
    def chunk(kind, payload):
        return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", zlib.crc32(kind + payload))

    row = b"\x00" + b"\xff\x00\x00" * width
    header = struct.pack(">IIBBBBB", width, height, bit_depth, color_type, 0, 0, 0)
    return (
        pdf.PNG_SIGNATURE
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(row * height))
        + chunk(b"IEND", b"")
    )


def test_png_to_pdf():
    data = pdf.image_to_pdf(png_bytes(2, 3), "png")
    assert b"/FlateDecode" in data
    assert b"/Width 2 /Height 3" in data
    assert len(pypdf.PdfReader(io.BytesIO(data)).pages) == 1


def test_jpeg_to_pdf_reads_frame_size():
    jpeg = b"\xff\xd8" + b"\xff\xc0\x00\x11\x08\x00\x10\x00\x20\x03" + b"\x00" * 15 + b"\xff\xd9"
    data = pdf.image_to_pdf(jpeg, "jpg")
    assert b"/DCTDecode" in data
    assert b"/Width 32 /Height 16" in data


def test_image_to_pdf_rejects_unsupported_images():
    with pytest.raises(pdf.PdfError):
        pdf.image_to_pdf(png_bytes(2, 2, bit_depth=16), "png")
    with pytest.raises(pdf.PdfError):
        pdf.image_to_pdf(b"not an image", "jpeg")
    with pytest.raises(documents.ConversionError):
        documents.get_converter("png", "pdf")(b"not a png")


def test_malformed_png_chunks_are_rejected():
    short_header = (
        pdf.PNG_SIGNATURE
        + struct.pack(">I", 5) + b"IHDR" + b"\x00" * 5 + struct.pack(">I", 0)
        + struct.pack(">I", 0) + b"IEND" + struct.pack(">I", 0)
    )
    with pytest.raises(pdf.PdfError, match="length 5"):
        pdf.image_to_pdf(short_header, "png")
    with pytest.raises(pdf.PdfError, match="truncated"):
        pdf.image_to_pdf(png_bytes(2, 2)[:-20], "png")
    with pytest.raises(pdf.PdfError, match="no pixels"):
        pdf.image_to_pdf(png_bytes(0, 2), "png")


def test_malformed_jpeg_segments_are_rejected():
    zero_length = b"\xff\xd8\xff\xe0\x00\x00" + b"\x00" * 12
    with pytest.raises(pdf.PdfError, match="segment length"):
        pdf.image_to_pdf(zero_length, "jpeg")
    no_width = b"\xff\xd8\xff\xc0\x00\x11\x08\x00\x10\x00\x00\x03" + b"\x00" * 15
    with pytest.raises(pdf.PdfError, match="no pixels"):
        pdf.image_to_pdf(no_width, "jpg")


def test_docx_round_trip_and_bad_archive():
    docx = documents.txt_to_docx("First <line>\nSecond".encode())
    assert documents.docx_to_txt(docx).decode() == "First <line>\nSecond"
    with pytest.raises(documents.ConversionError):
        documents.docx_to_txt(b"plain bytes")


def test_unsupported_pair():
    with pytest.raises(documents.UnsupportedConversion):
        documents.get_converter("pdf", "docx")
    assert documents.source_format_of("Photo.JPEG") == "jpeg"
    assert documents.source_format_of("README") == ""
