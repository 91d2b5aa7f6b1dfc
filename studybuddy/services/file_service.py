"""File validation and text extraction helpers for uploaded documents."""

import io
import zipfile

from docx import Document
from pypdf import PdfReader
from pypdf.errors import PdfReadError

PDF_MIME = 'application/pdf'
DOC_MIME = 'application/msword'
DOCX_MIME = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'
TEXT_MIME = 'text/plain'


class UnreadableFileError(ValueError):
    pass


def get_mime_type(filename):
    parts = str(filename or '').rsplit('.', 1)
    ext = parts[1].lower() if len(parts) > 1 else ''
    mime_types = {
        'pdf': PDF_MIME,
        'doc': DOC_MIME,
        'docx': DOCX_MIME,
        'txt': TEXT_MIME,
    }
    return mime_types.get(ext, 'application/octet-stream')


def resolve_mime_type(declared_mime, filename):
    """Prefer the declared MIME type; fall back to the extension for generic uploads."""
    mime = str(declared_mime or '').split(';')[0].strip().lower()
    if not mime or mime == 'application/octet-stream':
        return get_mime_type(filename)
    return mime


def bytes_have_pdf_signature(data):
    return data[:5] == b'%PDF-'


def bytes_have_docx_signature(data):
    if data[:4] != b'PK\x03\x04':
        return False
    try:
        with zipfile.ZipFile(io.BytesIO(data), 'r') as archive:
            return 'word/document.xml' in set(archive.namelist())
    except zipfile.BadZipFile:
        return False


def extract_pdf_text(data):
    if not bytes_have_pdf_signature(data):
        raise UnreadableFileError('File is not a PDF document.')
    try:
        reader = PdfReader(io.BytesIO(data))
        text_parts = [page.extract_text() or '' for page in reader.pages]
    except (PdfReadError, ValueError, KeyError) as exc:
        raise UnreadableFileError(f'Could not read PDF: {exc}') from exc
    return '\n'.join(text_parts).strip()


def extract_word_text(data):
    # python-docx reads the OOXML container only; legacy binary .doc files fail here.
    if not bytes_have_docx_signature(data):
        raise UnreadableFileError('File is not a readable Word document.')
    try:
        doc = Document(io.BytesIO(data))
    except (KeyError, ValueError, zipfile.BadZipFile) as exc:
        raise UnreadableFileError(f'Could not read Word document: {exc}') from exc
    return '\n'.join(paragraph.text for paragraph in doc.paragraphs).strip()


def extract_plain_text(data):
    for encoding in ('utf-8-sig', 'latin-1'):
        try:
            return data.decode(encoding).strip()
        except UnicodeDecodeError:
            continue
    raise UnreadableFileError('Could not decode text file.')


def extract_text(data, mime_type):
    if mime_type == PDF_MIME:
        return extract_pdf_text(data)
    if mime_type in (DOC_MIME, DOCX_MIME):
        return extract_word_text(data)
    if mime_type == TEXT_MIME:
        return extract_plain_text(data)
    raise UnreadableFileError(f'Unsupported file type: {mime_type}')
