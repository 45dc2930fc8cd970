from __future__ import annotations

import io
import logging
import zipfile
from typing import Callable, Dict, Tuple

import docx
import pypdf
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from docx.opc.exceptions import PackageNotFoundError
from pypdf.errors import PdfReadError

from ..models import DocumentConversion, ToolUsageLog
from . import pdf

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "document-converter"


class ConversionError(ValueError):
    pass


class UnsupportedConversion(ConversionError):
    pass


def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def txt_to_pdf(data: bytes) -> bytes:
    return pdf.text_to_pdf(_decode_text(data))


def pdf_to_txt(data: bytes) -> bytes:
    try:
        reader = pypdf.PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PdfReadError, ValueError, KeyError) as e:
        raise ConversionError(f"Could not read PDF: {e}")
    text = "\n".join(p.strip() for p in pages if p.strip())
    if not text:
        raise ConversionError("Unable to extract text from PDF")
    return text.encode("utf-8")


def image_to_pdf(source_format: str) -> Callable[[bytes], bytes]:
    def convert(data: bytes) -> bytes:
        try:
            return pdf.image_to_pdf(data, source_format)
        except pdf.PdfError as e:
            raise ConversionError(str(e))
    return convert


def docx_to_txt(data: bytes) -> bytes:
    try:
        document = docx.Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise ConversionError(f"Not a valid DOCX file: {e}")
    text = "\n".join(para.text for para in document.paragraphs).strip()
    if not text:
        raise ConversionError("Unable to extract text from DOCX file")
    return text.encode("utf-8")


def txt_to_docx(data: bytes) -> bytes:
    document = docx.Document()
    for line in _decode_text(data).replace("\r\n", "\n").split("\n"):
        document.add_paragraph(line)
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


CONVERTERS: Dict[Tuple[str, str], Callable[[bytes], bytes]] = {
    ("txt", "pdf"): txt_to_pdf,
    ("pdf", "txt"): pdf_to_txt,
    ("jpg", "pdf"): image_to_pdf("jpg"),
    ("jpeg", "pdf"): image_to_pdf("jpeg"),
    ("png", "pdf"): image_to_pdf("png"),
    ("docx", "txt"): docx_to_txt,
    ("txt", "docx"): txt_to_docx,
}

SUPPORTED_TARGETS = sorted({target for _, target in CONVERTERS})


def source_format_of(file_name: str) -> str:
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[1].lower()


def get_converter(source_format: str, target_format: str) -> Callable[[bytes], bytes]:
    try:
        return CONVERTERS[(source_format, target_format)]
    except KeyError:
        raise UnsupportedConversion(f"Conversion from {source_format} to {target_format} is not supported yet")


def _store(path: str, data: bytes) -> str:
    # Re-running a conversion overwrites its previous output
    if default_storage.exists(path):
        default_storage.delete(path)
    return default_storage.save(path, ContentFile(data))


def _record_failure(user, conversion: DocumentConversion, message: str) -> None:
    conversion.mark_failed(message)
    ToolUsageLog.record(
        user, ToolUsageLog.TOOL_DOCUMENT, success=False, error_message=message,
        conversion_id=conversion.pk, source_format=conversion.source_format, target_format=conversion.target_format,
    )


def convert_document(user, uploaded_file, target_format: str) -> DocumentConversion:
    """
    Store the upload, convert it and store the result. The returned record is
    completed, or failed with error_message set (ConversionError is re-raised).
    """
    target_format = target_format.lower().lstrip(".")
    source_format = source_format_of(uploaded_file.name)
    if uploaded_file.size > settings.DOCUMENT_MAX_UPLOAD_BYTES:
        raise ConversionError(f"File exceeds the {settings.DOCUMENT_MAX_UPLOAD_BYTES} byte limit")

    conversion = DocumentConversion.objects.create(
        owner=user,
        original_file_name=uploaded_file.name,
        source_format=source_format,
        target_format=target_format,
    )
    conversion.mark_processing()
    logger.info("Converting %s (%s -> %s) as conversion %s", uploaded_file.name, source_format, target_format, conversion.pk)

    try:
        converter = get_converter(source_format, target_format)
        data = uploaded_file.read()
        base = f"{STORAGE_PREFIX}/{user.pk}/{conversion.pk}"
        original_path = _store(f"{base}/original.{source_format}", data)
        DocumentConversion.objects.filter(pk=conversion.pk).update(original_file_path=original_path)
        conversion.original_file_path = original_path

        converted = converter(data)
        converted_path = _store(f"{base}/converted.{target_format}", converted)
    except ConversionError as e:
        logger.warning("Conversion %s failed: %s", conversion.pk, e)
        _record_failure(user, conversion, str(e))
        raise
    except Exception as e:
        logger.exception("Conversion %s crashed", conversion.pk)
        message = f"Unexpected error while converting {source_format} to {target_format}: {e}"
        _record_failure(user, conversion, message)
        raise ConversionError(message) from e

    conversion.mark_completed(converted_file_path=converted_path)
    ToolUsageLog.record(
        user, ToolUsageLog.TOOL_DOCUMENT,
        conversion_id=conversion.pk, source_format=source_format, target_format=target_format,
        size_bytes=len(converted),
    )
    return conversion


def download_url(conversion: DocumentConversion) -> str:
    if not conversion.converted_file_path:
        return ""
    return default_storage.url(conversion.converted_file_path)
