# Routes package init
"""
Ebook Shelf Backend — API Routes Package
==========================================

Route Inventory:
    - ebooks.py:  GET    /api/ebooks          (list records)
                  GET    /api/ebooks/{id}     (single record)
                  POST   /api/ebooks          (create, optional cover upload)
                  PUT    /api/ebooks/{id}     (partial update, optional new cover)
                  DELETE /api/ebooks/{id}     (delete record and cover)
    - health.py:  GET    /health              (database + image host status)

Routes are thin: they read form fields and files, call EbookService, and
leave status codes for errors to the global exception handlers.
"""
