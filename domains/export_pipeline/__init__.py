"""
Export Pipeline Domain

Watches for saved PSD documents and exports them next to the source:
- classifier.py - which events and paths qualify for export
- ledger.py - per-document debounce of editor write bursts
- worker.py - read, decode, encode and write one document
- dispatch.py - queue consumer launching debounced exports on a pool
- watcher.py - watchdog observer feeding the dispatch queue
- batch.py - one-shot export of existing documents
"""

__all__ = ["batch", "classifier", "codec", "dispatch", "ledger", "watcher", "worker"]
