"""
models.py
=========
ORM tables.  Request lists and the factors_considered map are stored as JSON
so a clinical record keeps the same document shape the API returns.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from storage.db import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Patient(Base):
    __tablename__ = "patients"

    id            = Column(Integer, primary_key=True)
    patient_id    = Column(String(64), unique=True, nullable=False, index=True)  # external id
    age           = Column(Float)
    sex           = Column(String(1))
    residence     = Column(String(255))
    date_reported = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    records = relationship("ClinicalRecord", back_populates="patient")

    def to_dict(self) -> dict:
        return {
            "patient_id":    self.patient_id,
            "age":           self.age,
            "sex":           self.sex,
            "residence":     self.residence,
            "date_reported": self.date_reported.isoformat() if self.date_reported else None,
        }


class ClinicalRecord(Base):
    __tablename__ = "clinical_records"

    id                 = Column(Integer, primary_key=True)
    patient_pk         = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    age                = Column(Float, nullable=False)
    sex                = Column(String(1), nullable=False)
    travel_history     = Column(Text, default="")
    symptoms           = Column(JSON, default=list)
    comorbidities      = Column(JSON, default=list)

    risk_level         = Column(String(64), nullable=False)
    confidence         = Column(Float, nullable=False)          # 0..1
    recommendation     = Column(Text, nullable=False)
    factors_considered = Column(JSON, default=dict)
    source             = Column(String(16), nullable=False, index=True)  # remote | fallback

    predicted_by       = Column(String(128))
    predicted_at       = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    patient = relationship("Patient", back_populates="records")

    def to_dict(self) -> dict:
        return {
            "id":             self.id,
            "patient_id":     self.patient.patient_id if self.patient else None,
            "age":            self.age,
            "sex":            self.sex,
            "travel_history": self.travel_history,
            "symptoms":       self.symptoms or [],
            "comorbidities":  self.comorbidities or [],
            "prediction": {
                "risk_level":         self.risk_level,
                "confidence":         self.confidence,
                "recommendation":     self.recommendation,
                "factors_considered": self.factors_considered or {},
                "source":             self.source,
            },
            "predicted_by":   self.predicted_by,
            "predicted_at":   self.predicted_at.isoformat() if self.predicted_at else None,
        }
