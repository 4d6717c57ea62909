# Services package init
"""
Ebook Shelf Backend — Services Layer
======================================

Service Inventory:
    - EbookService: validates requests and orchestrates the two stores
    - RecordStore (abstract) / SqlAlchemyRecordStore: e-book persistence
    - ImageStore (abstract) / CloudinaryImageStore: cover image hosting
    - UploadValidator: cover type and size checks

Stores are passed into EbookService per request rather than imported, so
unit tests run the real service against in-memory stores.
"""
