# Routes package init
"""
SealNote Backend — API Routes Package
=======================================

Route Inventory:
    - notes.py:   POST   /api/note                          (store a note)
                  GET    /api/note/{id}                     (fetch a note)
                  GET    /api/note/{id}/embed/{embed_id}    (fetch an embed)
                  DELETE /api/note/{id}                     (burn a note)
    - health.py:  GET    /health                            (service health)
                  GET    /api/test                          (connectivity ping)

Routes stay thin: parse the request, apply expiry policy, call a service,
shape the response. Storage rules live in app.services.
"""
