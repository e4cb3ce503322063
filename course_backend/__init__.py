"""Course materials: upload, chunking, embedding and cross-store deletion.

Provides:
- Plain-text extraction from uploaded files (text_extraction.py)
- Overlapping fixed-size chunking (chunking.py)
- OpenAI-compatible embeddings client (embeddings.py)
- The document lifecycle coordinator keeping the metadata store and the
  vector index consistent (document_lifecycle.py)

Data separation:
- Metadata records → metadata store, ``documents_collection``
- Chunk vectors → vector index, tagged with ``courseName`` and document id
"""
