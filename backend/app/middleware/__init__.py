# Middleware package init
"""
SealNote Backend — Middleware Package
=======================================

Middleware Chain (order matters):
    Request → [Request ID] → [Rate Limit] → [Access Log] → [GZip] → [CORS] → Route

    1. Request ID first, so every later log line and error body (429
       included) can carry it
    2. Rate Limit next, so abusive clients are rejected before any work
    3. Access Log measures the rest of the chain and records the status

None of these ever read the request body; ciphertext passes through untouched.
"""
