"""
PaperLens Extraction Module
Turns a paper file into page-marked full text.
"""

from .pdf_text_extractor import PdfTextExtractor, extract_full_text

__all__ = ['PdfTextExtractor', 'extract_full_text']
