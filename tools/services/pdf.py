"""
Small PDF writer for the document converter.

Produces text documents in Helvetica and single-page image documents
(JPEG via DCTDecode, non-interlaced 8-bit PNG via FlateDecode predictors).
"""
from __future__ import annotations

import struct
import textwrap
import zlib
from typing import List, Tuple

PAGE_WIDTH = 612
PAGE_HEIGHT = 792
MARGIN = 50
FONT_SIZE = 12
LEADING = 14
WRAP_COLUMNS = 90
LINES_PER_PAGE = (PAGE_HEIGHT - 2 * MARGIN) // LEADING

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PNG_IHDR_LENGTH = 13
# PNG colour type -> (PDF colour space, components)
PNG_COLOR_TYPES = {0: ("/DeviceGray", 1), 2: ("/DeviceRGB", 3)}
JPEG_SOF_MARKERS = {0xC0, 0xC1, 0xC2, 0xC3, 0xC5, 0xC6, 0xC7, 0xC9, 0xCA, 0xCB, 0xCD, 0xCE, 0xCF}


class PdfError(ValueError):
    pass


class _Document:
    def __init__(self) -> None:
        self.objects: List[bytes] = []

    def add(self, body: bytes) -> int:
        self.objects.append(body)
        return len(self.objects)

    def reserve(self) -> int:
        return self.add(b"")

    def set(self, num: int, body: bytes) -> None:
        self.objects[num - 1] = body

    def render(self, root: int) -> bytes:
        out = bytearray(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n")
        offsets = []
        for num, body in enumerate(self.objects, start=1):
            offsets.append(len(out))
            out += b"%d 0 obj\n" % num + body + b"\nendobj\n"
        xref = len(out)
        out += b"xref\n0 %d\n" % (len(self.objects) + 1)
        out += b"0000000000 65535 f \n"
        for offset in offsets:
            out += b"%010d 00000 n \n" % offset
        out += b"trailer\n<< /Size %d /Root %d 0 R >>\n" % (len(self.objects) + 1, root)
        out += b"startxref\n%d\n%%%%EOF\n" % xref
        return bytes(out)


def _stream(data: bytes, extra: bytes = b"") -> bytes:
    return b"<< /Length %d %s>>\nstream\n" % (len(data), extra) + data + b"\nendstream"


def _escape(line: str) -> bytes:
    # Matches the /WinAnsiEncoding declared on the font
    raw = line.encode("cp1252", errors="replace")
    return raw.replace(b"\\", b"\\\\").replace(b"(", b"\\(").replace(b")", b"\\)")


def _wrap(text: str) -> List[str]:
    lines: List[str] = []
    for paragraph in text.replace("\r\n", "\n").replace("\t", "    ").split("\n"):
        lines.extend(textwrap.wrap(paragraph, WRAP_COLUMNS) or [""])
    return lines


def text_to_pdf(text: str) -> bytes:
    lines = _wrap(text)
    pages = [lines[i:i + LINES_PER_PAGE] for i in range(0, len(lines), LINES_PER_PAGE)] or [[]]

    doc = _Document()
    catalog = doc.reserve()
    pages_obj = doc.reserve()
    font = doc.add(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>")

    kids = []
    for page_lines in pages:
        ops = [b"BT", b"/F1 %d Tf" % FONT_SIZE, b"%d TL" % LEADING, b"%d %d Td" % (MARGIN, PAGE_HEIGHT - MARGIN)]
        for line in page_lines:
            ops.append(b"(" + _escape(line) + b") Tj T*")
        ops.append(b"ET")
        content = doc.add(_stream(b"\n".join(ops)))
        kids.append(doc.add(
            b"<< /Type /Page /Parent %d 0 R /MediaBox [0 0 %d %d] /Contents %d 0 R "
            b"/Resources << /Font << /F1 %d 0 R >> >> >>" % (pages_obj, PAGE_WIDTH, PAGE_HEIGHT, content, font)
        ))

    doc.set(pages_obj, b"<< /Type /Pages /Kids [%s] /Count %d >>" % (
        b" ".join(b"%d 0 R" % k for k in kids), len(kids)))
    doc.set(catalog, b"<< /Type /Catalog /Pages %d 0 R >>" % pages_obj)
    return doc.render(catalog)


def _jpeg_info(data: bytes) -> Tuple[int, int, str]:
    if not data.startswith(b"\xff\xd8"):
        raise PdfError("Not a JPEG image")
    i = 2
    while i + 9 < len(data):
        if data[i] != 0xFF:
            i += 1
            continue
        marker = data[i + 1]
        if marker in (0xD8, 0x01) or 0xD0 <= marker <= 0xD7:
            i += 2
            continue
        (length,) = struct.unpack(">H", data[i + 2:i + 4])
        if length < 2:
            raise PdfError("JPEG segment length is invalid")
        if marker in JPEG_SOF_MARKERS:
            if length < 8:
                raise PdfError("JPEG frame header is truncated")
            height, width = struct.unpack(">HH", data[i + 5:i + 9])
            components = data[i + 9]
            space = {1: "/DeviceGray", 3: "/DeviceRGB", 4: "/DeviceCMYK"}.get(components)
            if space is None:
                raise PdfError(f"Unsupported JPEG component count {components}")
            if not width or not height:
                raise PdfError("JPEG image has no pixels")
            return width, height, space
        i += 2 + length
    raise PdfError("JPEG image has no frame header")


def _png_info(data: bytes) -> Tuple[int, int, str, int, bytes]:
    if not data.startswith(PNG_SIGNATURE):
        raise PdfError("Not a PNG image")
    pos = len(PNG_SIGNATURE)
    header = None
    idat = bytearray()
    while pos + 8 <= len(data):
        (length,) = struct.unpack(">I", data[pos:pos + 4])
        kind = data[pos + 4:pos + 8]
        chunk = data[pos + 8:pos + 8 + length]
        if len(chunk) != length:
            raise PdfError(f"PNG {kind.decode('latin-1')} chunk is truncated")
        if kind == b"IHDR":
            if length != PNG_IHDR_LENGTH:
                raise PdfError(f"PNG header has length {length}, expected {PNG_IHDR_LENGTH}")
            header = struct.unpack(">IIBBBBB", chunk)
        elif kind == b"IDAT":
            idat += chunk
        elif kind == b"IEND":
            break
        pos += 12 + length
    if header is None or not idat:
        raise PdfError("PNG image is truncated")
    width, height, bit_depth, color_type, _, _, interlace = header
    if not width or not height:
        raise PdfError("PNG image has no pixels")
    if bit_depth != 8 or interlace or color_type not in PNG_COLOR_TYPES:
        raise PdfError("Only 8-bit non-interlaced RGB or greyscale PNG images are supported")
    space, components = PNG_COLOR_TYPES[color_type]
    return width, height, space, components, bytes(idat)


def image_to_pdf(data: bytes, image_format: str) -> bytes:
    """Place the image on a single letter page, scaled to fit the margins."""
    fmt = image_format.lower()
    if fmt in ("jpg", "jpeg"):
        width, height, space = _jpeg_info(data)
        image = _stream(data, b"/Type /XObject /Subtype /Image /Width %d /Height %d /ColorSpace %s "
                              b"/BitsPerComponent 8 /Filter /DCTDecode " % (width, height, space.encode()))
    elif fmt == "png":
        width, height, space, components, idat = _png_info(data)
        # Validate the compressed stream before embedding it
        try:
            zlib.decompress(idat)
        except zlib.error as e:
            raise PdfError(f"PNG image data is corrupt: {e}")
        image = _stream(idat, b"/Type /XObject /Subtype /Image /Width %d /Height %d /ColorSpace %s "
                              b"/BitsPerComponent 8 /Filter /FlateDecode "
                              b"/DecodeParms << /Predictor 15 /Colors %d /BitsPerComponent 8 /Columns %d >> "
                              % (width, height, space.encode(), components, width))
    else:
        raise PdfError(f"Unsupported image format '{image_format}'")

    scale = min((PAGE_WIDTH - 2 * MARGIN) / width, (PAGE_HEIGHT - 2 * MARGIN) / height, 1.0)
    draw_w, draw_h = width * scale, height * scale
    x = (PAGE_WIDTH - draw_w) / 2
    y = (PAGE_HEIGHT - draw_h) / 2

    doc = _Document()
    catalog = doc.reserve()
    pages_obj = doc.reserve()
    image_obj = doc.add(image)
    content = doc.add(_stream(b"q %.2f 0 0 %.2f %.2f %.2f cm /Im1 Do Q" % (draw_w, draw_h, x, y)))
    page = doc.add(
        b"<< /Type /Page /Parent %d 0 R /MediaBox [0 0 %d %d] /Contents %d 0 R "
        b"/Resources << /XObject << /Im1 %d 0 R >> >> >>" % (pages_obj, PAGE_WIDTH, PAGE_HEIGHT, content, image_obj)
    )
    doc.set(pages_obj, b"<< /Type /Pages /Kids [%d 0 R] /Count 1 >>" % page)
    doc.set(catalog, b"<< /Type /Catalog /Pages %d 0 R >>" % pages_obj)
    return doc.render(catalog)
