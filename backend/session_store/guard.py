from __future__ import annotations

from medassist_core.schemas import TIME_OF_DAY_OPTIONS, Medication

from .keys import FEATURE_KINDS, SessionKey


class SessionStoreError(Exception):
    pass


class SessionStoreGuard:
    def ensure_session_id(self, session_id: str) -> None:
        if not session_id or len(session_id) > 128:
            raise SessionStoreError("Invalid session id.")

    def ensure_key(self, key: SessionKey) -> None:
        self.ensure_session_id(key.session_id)
        if key.kind not in FEATURE_KINDS[key.feature]:
            raise SessionStoreError(f"{key.kind.value} entries do not belong to {key.feature.value} sessions.")

    def validate_medication(self, medication: Medication) -> Medication:
        missing = [
            field
            for field in ("name", "dosage", "frequency")
            if not getattr(medication, field).strip()
        ]
        if not medication.timeOfDay:
            missing.append("timeOfDay")
        if missing:
            raise SessionStoreError(f"Please fill in all required fields: {', '.join(missing)}")
        invalid = [slot for slot in medication.timeOfDay if slot not in TIME_OF_DAY_OPTIONS]
        if invalid:
            raise SessionStoreError(f"Unsupported time of day: {', '.join(invalid)}")
        return medication
