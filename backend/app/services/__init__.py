# Services package init
"""
SealNote Backend — Services Layer
===================================

What:  The data-access layer between routes (HTTP) and the database.
Why:   Routes handle HTTP; services own the storage invariants.

Service Inventory:
    - NoteService:   create / get / delete / expired-query over notes
    - EmbedService:  lookup of an embed under its owning note
    - ExpiryService: batched purge of expired notes for an external scheduler

All services are stateless singletons that borrow the caller's session.
"""
