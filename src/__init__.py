"""Bank Document Field Extraction System.

Extracts account, routing, IFSC, bank and branch details from scanned
or digital checks and statements, using the embedded PDF text layer
when present and falling back to OpenCV preprocessing with Tesseract
OCR and MICR line parsing otherwise.
"""
