"""
store.py
========
RecordStore, the persistence collaborator used by the orchestrator and the
patients / records routers.

  Patient         upsert by external patient_id (created on first sighting)
  ClinicalRecord  insert-only; removed only through delete_record()

Every public method opens a short-lived session and returns plain dicts, so
callers never hold ORM objects past the session boundary.  Write failures are
rolled back and re-raised as PersistenceError.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import func, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from risk_engine.errors import PersistenceError
from risk_engine.prediction import PredictionRequest, PredictionResult
from storage.db import Base, make_engine, make_session_factory
from storage.models import ClinicalRecord, Patient

logger = logging.getLogger(__name__)


class RecordStore:
    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = make_engine(database_url)
        self._session_factory = make_session_factory(self.engine)

    # -- lifecycle ----------------------------------------------------------

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.info("Storage tables ready (%s).", self.engine.url.render_as_string(hide_password=True))

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning("Database ping failed: %s", exc)
            return False

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Database operation failed: {exc}") from exc
        finally:
            session.close()

    # -- patients -----------------------------------------------------------

    @staticmethod
    def _insert_missing_patient(session: Session, patient_id: str) -> bool:
        """
        Insert a bare patient row unless one already exists.

        Uses INSERT ... ON CONFLICT DO NOTHING on SQLite and PostgreSQL so
        concurrent first sightings of one patient_id converge on a single row.
        Returns True when this call created the row.
        """
        dialect = session.get_bind().dialect.name
        if dialect == "sqlite":
            stmt = sqlite_insert(Patient)
        elif dialect == "postgresql":
            stmt = pg_insert(Patient)
        else:
            try:
                with session.begin_nested():
                    session.add(Patient(patient_id=patient_id))
                return True
            except IntegrityError:
                return False

        result = session.execute(
            stmt.values(patient_id=patient_id)
            .on_conflict_do_nothing(index_elements=["patient_id"])
        )
        return result.rowcount == 1

    @classmethod
    def _upsert_patient(
        cls,
        session: Session,
        patient_id: str,
        age: Optional[float] = None,
        sex: Optional[str] = None,
        residence: Optional[str] = None,
    ) -> Patient:
        patient = session.execute(
            select(Patient).where(Patient.patient_id == patient_id)
        ).scalar_one_or_none()

        if patient is None:
            if cls._insert_missing_patient(session, patient_id):
                logger.info("Registered new patient %s.", patient_id)
            patient = session.execute(
                select(Patient).where(Patient.patient_id == patient_id)
            ).scalar_one()

        if age is not None:
            patient.age = age
        if sex is not None:
            patient.sex = sex
        if residence is not None:
            patient.residence = residence
        session.flush()
        return patient

    def upsert_patient(
        self,
        patient_id: str,
        age: Optional[float] = None,
        sex: Optional[str] = None,
        residence: Optional[str] = None,
    ) -> Dict[str, Any]:
        with self._session() as session:
            return self._upsert_patient(session, patient_id, age, sex, residence).to_dict()

    def get_patient(self, patient_id: str) -> Optional[Dict[str, Any]]:
        with self._session() as session:
            patient = session.execute(
                select(Patient).where(Patient.patient_id == patient_id)
            ).scalar_one_or_none()
            return patient.to_dict() if patient else None

    def list_patients(self, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        with self._session() as session:
            rows = session.execute(
                select(Patient)
                .order_by(Patient.date_reported.desc(), Patient.id.desc())
                .limit(limit)
                .offset(offset)
            ).scalars()
            return [p.to_dict() for p in rows]

    # -- clinical records ---------------------------------------------------

    def save_prediction(
        self,
        request: PredictionRequest,
        result: PredictionResult,
        requester: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Upsert the patient and insert one ClinicalRecord in one transaction."""
        if not request.patient_id:
            raise PersistenceError("Cannot save a clinical record without a patient_id.")

        with self._session() as session:
            patient = self._upsert_patient(session, request.patient_id, request.age, request.sex)
            record = ClinicalRecord(
                patient            = patient,
                age                = request.age,
                sex                = request.sex,
                travel_history     = request.travel_history,
                symptoms           = list(request.symptoms),
                comorbidities      = list(request.comorbidities),
                risk_level         = result.risk_level,
                confidence         = result.confidence,
                recommendation     = result.recommendation,
                factors_considered = dict(result.factors_considered),
                source             = result.source,
                predicted_by       = requester,
            )
            session.add(record)
            session.flush()
            logger.info(
                "Saved clinical record %d for patient %s (source=%s).",
                record.id, request.patient_id, result.source,
            )
            return record.to_dict()

    def list_records(
        self,
        source: Optional[str] = None,
        patient_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        with self._session() as session:
            query = select(ClinicalRecord).options(selectinload(ClinicalRecord.patient))
            if source:
                query = query.where(ClinicalRecord.source == source)
            if patient_id:
                query = query.join(ClinicalRecord.patient).where(Patient.patient_id == patient_id)
            query = (
                query.order_by(ClinicalRecord.predicted_at.desc(), ClinicalRecord.id.desc())
                .limit(limit)
                .offset(offset)
            )
            return [r.to_dict() for r in session.execute(query).scalars()]

    def delete_record(self, record_id: int) -> bool:
        with self._session() as session:
            record = session.get(ClinicalRecord, record_id)
            if record is None:
                return False
            session.delete(record)
            logger.info("Deleted clinical record %d.", record_id)
            return True

    def source_counts(self) -> Dict[str, int]:
        with self._session() as session:
            rows = session.execute(
                select(ClinicalRecord.source, func.count(ClinicalRecord.id))
                .group_by(ClinicalRecord.source)
            ).all()
            return {source: count for source, count in rows}
