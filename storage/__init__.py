"""
storage : document persistence for patients and clinical records.

  db     : engine / session factory construction
  models : ORM tables (patients, clinical_records)
  store  : RecordStore: upsert / insert / list / delete / stats
"""

from storage.store import RecordStore

__all__ = ["RecordStore"]
