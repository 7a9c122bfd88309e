"""
cvextract: document upload, OCR and AI extraction service.
"""
