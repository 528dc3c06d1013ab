# Middleware package init
"""
Yote — Middleware Package
==========================

Middleware Chain (outermost first):
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    request_id.py:  correlation id (ContextVar, response header, log filter)
    logging.py:     one "yote.access" line per API call
"""
