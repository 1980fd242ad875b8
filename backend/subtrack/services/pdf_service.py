"""
SubTrack Backend: PDF Page Rendering Service
===============================================

What:  Turns the first pages of an uploaded PDF invoice into images.
Why:   The invoice analysis step works on page images, and browsers cannot
       rasterise a PDF without shipping a heavy client library.
How:   pypdfium2 renders each page to a bitmap, Pillow encodes it as PNG
       or JPEG, and the result is returned as a base64 data URL.
Who:   Called by routes/documents.py.

Validation order:
    1. Extension or `%PDF-` magic header (either is enough)
    2. Size limit (settings.max_upload_size)
    3. Document opens and pages render, else DocumentConversionError (422)
"""

import base64
import logging
from io import BytesIO
from pathlib import Path
from typing import List, Optional

import pypdfium2 as pdfium

from subtrack.config import settings
from subtrack.exceptions import DocumentConversionError, ValidationError
from subtrack.schemas.common import PdfConversionResponse

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"

# Output format → (Pillow format name, MIME type)
IMAGE_FORMATS = {
    "png": ("PNG", "image/png"),
    "jpeg": ("JPEG", "image/jpeg"),
}


class PdfService:

    def validate(self, content: bytes, filename: Optional[str]) -> None:
        """
        Reject uploads that are not PDFs or exceed the size limit.

        Raises:
            ValidationError (→ 400)
        """
        if not content:
            raise ValidationError(message="The uploaded file is empty", field="file")

        looks_like_pdf = (
            Path(filename or "").suffix.lower() == ".pdf"
            or content.lstrip()[:5] == PDF_MAGIC
        )
        if not looks_like_pdf:
            raise ValidationError(
                message="Only PDF files can be converted",
                field="file",
                context={"filename": filename},
            )

        if len(content) > settings.max_upload_size:
            max_mb = settings.max_upload_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size ({len(content) / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": len(content)},
            )

    def _encode(self, image, image_format: str) -> str:
        pil_format, mime_type = IMAGE_FORMATS[image_format]
        buffer = BytesIO()
        if pil_format == "JPEG":
            image.convert("RGB").save(buffer, format=pil_format, quality=settings.pdf_jpeg_quality)
        else:
            image.save(buffer, format=pil_format)
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    def convert(
        self,
        content: bytes,
        filename: Optional[str] = None,
        max_pages: Optional[int] = None,
        image_format: str = "png",
    ) -> PdfConversionResponse:
        """
        Render up to `max_pages` pages (capped by settings.pdf_max_pages).

        Args:
            content:      Raw PDF bytes
            filename:     Original upload name, used for the extension check
            max_pages:    Requested page limit; None means the configured cap
            image_format: "png" or "jpeg"

        Raises:
            ValidationError:          not a PDF, too large, bad format/maxPages
            DocumentConversionError:  the PDF cannot be opened or rendered
        """
        self.validate(content, filename)

        image_format = (image_format or "png").lower()
        if image_format == "jpg":
            image_format = "jpeg"
        if image_format not in IMAGE_FORMATS:
            raise ValidationError(
                message=f"Unsupported image format '{image_format}'. Use png or jpeg.",
                field="format",
            )
        if max_pages is not None and max_pages < 1:
            raise ValidationError(message="maxPages must be at least 1", field="maxPages")
        limit = min(max_pages or settings.pdf_max_pages, settings.pdf_max_pages)

        try:
            pdf = pdfium.PdfDocument(content)
        except pdfium.PdfiumError as e:
            logger.warning("Could not open PDF %s: %s", filename, str(e))
            raise DocumentConversionError(
                message="The PDF could not be read. It may be corrupt or password protected.",
                context={"filename": filename},
            )

        images: List[str] = []
        try:
            page_count = len(pdf)
            for index in range(min(limit, page_count)):
                page = pdf[index]
                try:
                    bitmap = page.render(scale=settings.pdf_render_scale)
                    images.append(self._encode(bitmap.to_pil(), image_format))
                finally:
                    page.close()
        except Exception as e:
            logger.error("Rendering PDF %s failed: %s", filename, str(e), exc_info=True)
            raise DocumentConversionError(
                message="The PDF could not be converted to images.",
                context={"filename": filename, "error_type": type(e).__name__},
            )
        finally:
            pdf.close()

        logger.info(
            "Rendered %d of %d page(s) from %s as %s",
            len(images), page_count, filename or "upload", image_format,
        )
        return PdfConversionResponse(
            page_count=page_count,
            rendered_pages=len(images),
            images=images,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
pdf_service = PdfService()
