from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests

from srgitops.core.errors import RegistryError, StateError
from srgitops.core.state import (
    Compatibility,
    Schema,
    SchemaReference,
    SchemaType,
    State,
    Subject,
)

logger = logging.getLogger(__name__)

# Registry error codes (Confluent REST API)
SUBJECT_NOT_FOUND = 40401
SCHEMA_NOT_FOUND = 40403


class SchemaRegistryAdapter:
    """Adapter around the schema registry REST API (subjects/config/compatibility)."""

    def __init__(
        self,
        session: requests.Session,
        url: str,
        *,
        timeout: float = 30.0,
        normalize: bool = False,
    ) -> None:
        self.session = session
        self.url = url.rstrip("/")
        self.timeout = timeout
        # Sent with lookups and registrations so both sides normalize alike.
        self.normalize = normalize

    # -- HTTP helpers -----------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body, raising RegistryError on failure."""
        url = f"{self.url}{path}"
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self.session.request(
                method, url, params=params, json=json, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise RegistryError(f"{method} {url} failed: {exc}") from exc

        if not response.ok:
            error_code = None
            message = response.text
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                error_code = body.get("error_code")
                message = body.get("message") or message
            raise RegistryError(
                f"{method} {path} returned {response.status_code}: {message}",
                status_code=response.status_code,
                error_code=error_code,
            )

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _subject_path(name: str) -> str:
        return quote(name, safe="")

    @staticmethod
    def _schema_payload(schema: Schema) -> dict[str, Any]:
        payload: dict[str, Any] = {"schema": schema.text}
        # Older registries only understand AVRO and reject an explicit schemaType.
        if schema.schema_type != SchemaType.AVRO:
            payload["schemaType"] = schema.schema_type.value
        if schema.references:
            payload["references"] = [
                {"name": r.name, "subject": r.subject, "version": r.version}
                for r in schema.references
            ]
        return payload

    @staticmethod
    def _schema_from_payload(payload: dict[str, Any]) -> Schema:
        try:
            return Schema(
                text=payload["schema"],
                schema_type=SchemaType.parse(payload.get("schemaType")),
                references=tuple(
                    SchemaReference(
                        name=r["name"], subject=r["subject"], version=int(r["version"])
                    )
                    for r in payload.get("references") or []
                ),
            )
        except StateError as exc:
            subject = payload.get("subject", "?")
            raise RegistryError(
                f"Registry returned an unusable schema for '{subject}': {exc}"
            ) from exc

    # -- reads ------------------------------------------------------------

    def list_subject_names(self) -> list[str]:
        """Return all subjects currently registered."""
        return list(self._request("GET", "/subjects") or [])

    def test_compatibility(self, subject: Subject) -> list[str]:
        """Test the subject's schema against its latest version; empty list = compatible."""
        path = f"/compatibility/subjects/{self._subject_path(subject.name)}/versions/latest"
        try:
            body = self._request(
                "POST",
                path,
                params={"verbose": "true"},
                json=self._schema_payload(subject.schema),
            )
        except RegistryError as exc:
            # Nothing registered yet, so there is nothing to be incompatible with.
            if exc.error_code in (SUBJECT_NOT_FOUND, SCHEMA_NOT_FOUND):
                return []
            raise

        if body.get("is_compatible", False):
            return []
        messages = [str(m) for m in body.get("messages") or []]
        return messages or ["Schema is not compatible with the latest version"]

    def _global_config(self) -> dict[str, Any]:
        return self._request("GET", "/config") or {}

    def global_compatibility(self) -> Compatibility:
        """Return the global compatibility level."""
        return Compatibility.parse(self._global_config()["compatibilityLevel"])

    def normalize_setting(self) -> bool:
        """Return the global normalize flag (False if the registry does not report it)."""
        return bool(self._global_config().get("normalize") or False)

    def subject_compatibility(self, name: str) -> Compatibility:
        """Return the compatibility in effect for a subject (falls back to global)."""
        body = self._request(
            "GET",
            f"/config/{self._subject_path(name)}",
            params={"defaultToGlobal": "true"},
        )
        return Compatibility.parse(body["compatibilityLevel"])

    def subject_compatibility_override(self, name: str) -> Compatibility | None:
        """Return the subject-level compatibility, or None if only the global one applies."""
        try:
            body = self._request("GET", f"/config/{self._subject_path(name)}")
        except RegistryError as exc:
            if exc.status_code == 404:
                return None
            raise
        return Compatibility.parse(body["compatibilityLevel"])

    def latest_schema(self, name: str) -> Schema:
        """Return the latest registered schema of a subject."""
        body = self._request(
            "GET", f"/subjects/{self._subject_path(name)}/versions/latest"
        )
        return self._schema_from_payload(body)

    def existing_version(self, subject: Subject) -> int | None:
        """Return the version under which `subject.schema` is registered, or None."""
        try:
            body = self._request(
                "POST",
                f"/subjects/{self._subject_path(subject.name)}",
                params={"normalize": str(self.normalize).lower()},
                json=self._schema_payload(subject.schema),
            )
        except RegistryError as exc:
            if exc.status_code == 404:
                return None
            raise
        version = body.get("version")
        return int(version) if version is not None else None

    def get_state(self) -> State:
        """Return a snapshot of the whole registry as a State."""
        subjects: list[Subject] = []
        for name in self.list_subject_names():
            subjects.append(
                Subject(
                    name=name,
                    schema=self.latest_schema(name),
                    compatibility=self.subject_compatibility_override(name),
                )
            )
        config = self._global_config()
        return State(
            compatibility=Compatibility.parse(config["compatibilityLevel"]),
            normalize=config.get("normalize"),
            subjects=tuple(subjects),
        )

    # -- writes -----------------------------------------------------------

    def set_global_compatibility(self, compatibility: Compatibility) -> None:
        """Update the global compatibility level."""
        self._request("PUT", "/config", json={"compatibility": compatibility.value})

    def set_normalize(self, normalize: bool) -> None:
        """Update the global normalize flag."""
        self._request("PUT", "/config", json={"normalize": normalize})

    def set_subject_compatibility(self, name: str, compatibility: Compatibility) -> None:
        """Update the compatibility level of a subject."""
        self._request(
            "PUT",
            f"/config/{self._subject_path(name)}",
            json={"compatibility": compatibility.value},
        )

    def register(self, subject: Subject) -> int:
        """Register `subject.schema` as a new version and return its schema id."""
        body = self._request(
            "POST",
            f"/subjects/{self._subject_path(subject.name)}/versions",
            params={"normalize": str(self.normalize).lower()},
            json=self._schema_payload(subject.schema),
        )
        return int(body["id"])

    def delete_subject(self, name: str) -> None:
        """Soft-delete a subject and all of its versions."""
        self._request("DELETE", f"/subjects/{self._subject_path(name)}")
