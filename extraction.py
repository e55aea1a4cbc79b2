# extraction.py: uploaded file -> raw text (OCR for images, text layer for PDFs)
import os
from pathlib import Path
from typing import Union

import pdfplumber
import pytesseract
from PIL import Image

from errors import UpstreamFailure

_TESSERACT_CMD = (os.getenv("TESSERACT_CMD") or "").strip()
if _TESSERACT_CMD:
    pytesseract.pytesseract.tesseract_cmd = _TESSERACT_CMD

PathLike = Union[str, Path]


def _resolve(path: PathLike) -> Path:
    return Path(str(path).replace("\\", "/")).resolve()


def extract_image_text(path: PathLike, lang: str = "eng") -> str:
    try:
        with Image.open(_resolve(path)) as img:
            text = pytesseract.image_to_string(img, lang=lang)
    except (OSError, pytesseract.TesseractError) as e:
        raise UpstreamFailure(f"Image OCR failed: {e}") from e
    text = (text or "").strip()
    if not text:
        raise UpstreamFailure("No text extracted from image")
    return text


def extract_pdf_text(path: PathLike) -> str:
    parts = []
    try:
        with pdfplumber.open(_resolve(path)) as pdf:
            for page in pdf.pages:
                t = page.extract_text()
                if t:
                    parts.append(t)
    except Exception as e:
        raise UpstreamFailure(f"PDF text extraction failed: {e}") from e
    text = "\n".join(parts).strip()
    if not text:
        raise UpstreamFailure("No text extracted from PDF")
    return text
