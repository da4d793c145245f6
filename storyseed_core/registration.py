"""Registration wizard: gated, linear multi-step entry flow.

Architecture:
- State is a plain dict (see WizardState); commands are plain dicts with a 'type'
- apply_wizard_command() is pure: it works on a deepcopy and returns
  WizardOutcome(state, error). A failed gate returns the unchanged state plus a
  WizardError; nothing raises for user mistakes
- RegistrationWizard drives the pure transitions against the backend
  (OTP send/verify, duplicate check, upload, insert, webhook) and only commits
  the new state once the external call succeeded

Steps:
    phone_verify (phone_entry -> otp_entry -> verified)
      -> personal_info -> story_details -> review -> submitted

Transitions:
- REQUEST_OTP: phone_entry/otp_entry -> otp_entry; needs exactly 10 digits
- OTP_VERIFIED: otp_entry -> verified, step personal_info; needs a 6-digit code and userId
- SUBMIT_PERSONAL_INFO: personal_info -> story_details; all fields + selected event
- SUBMIT_STORY_DETAILS: story_details -> review; title, category, class, description, media
- GO_BACK: story_details -> personal_info (the only regression)
- CHANGE_PHONE: any step before submitted -> phone_verify/phone_entry
- MARK_SUBMITTED: review -> submitted (set by RegistrationWizard.confirm)

`submitted` is terminal; every command afterwards is rejected.
"""
from __future__ import annotations

import hashlib
import logging
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from .backend import BackendError, StudioBackend
from .config import StudioConfig
from .types import WizardCommand, WizardState
from .validation import InputSanitizer, PersonalInfo, StoryDetails, first_error

logger = logging.getLogger(__name__)

PERSONAL_FIELDS = ("firstName", "lastName", "age", "email", "city", "eventId")
STORY_FIELDS = (
    "storyTitle",
    "category",
    "classLevel",
    "description",
    "mediaName",
    "mediaContentType",
)


@dataclass(frozen=True)
class WizardError:
    """A user-correctable failure; the offending transition did not happen.

    kind:
      - validation: missing/invalid field (see `field`)
      - invalid_transition: command not allowed from the current step
      - external_failure: auth/persistence/upload call failed, retry by hand
      - duplicate_registration: phone already entered in the selected event
    """

    kind: str
    message: str
    field: str | None = None


@dataclass
class WizardOutcome:
    state: Dict[str, Any]
    error: WizardError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def default_wizard_state() -> Dict[str, Any]:
    """Fresh wizard state positioned at phone entry."""
    return {
        "step": "phone_verify",
        "phoneStage": "phone_entry",
        "phone": "",
        "userId": None,
        "firstName": "",
        "lastName": "",
        "age": None,
        "email": "",
        "city": "",
        "eventId": None,
        "storyTitle": "",
        "category": "",
        "classLevel": "",
        "description": "",
        "mediaName": None,
        "mediaContentType": None,
        "registrationId": None,
        "idempotencyKey": None,
        "completedSteps": [],
    }


def idempotency_key(user_id: str | None, event_id: str | None) -> str:
    raw = f"{user_id or ''}|{event_id or ''}"
    return f"reg:{hashlib.sha1(raw.encode('utf-8')).hexdigest()}"


def _invalid(state: Dict[str, Any], ctype: Any) -> WizardOutcome:
    return WizardOutcome(
        state=state,
        error=WizardError(
            kind="invalid_transition",
            message=f"{ctype} is not allowed at step {state.get('step')}",
        ),
    )


def _rejected(state: Dict[str, Any], message: str, field: str | None) -> WizardOutcome:
    return WizardOutcome(state=state, error=WizardError(kind="validation", message=message, field=field))


def _complete(state: Dict[str, Any], step: str, next_step: str) -> None:
    done: List[str] = state.get("completedSteps") or []
    if step not in done:
        done.append(step)
    state["completedSteps"] = done
    state["step"] = next_step


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _apply_transition(state: Dict[str, Any], cmd: Dict[str, Any]) -> WizardOutcome:
    new_state: Dict[str, Any] = deepcopy(state)
    ctype = cmd.get("type")
    step = new_state.get("step")

    if step == "submitted":
        return _invalid(state, ctype)

    if ctype == "REQUEST_OTP":
        if step != "phone_verify" or new_state.get("phoneStage") == "verified":
            return _invalid(state, ctype)
        digits = InputSanitizer.phone_digits(cmd.get("phone"))
        if len(digits) != StudioConfig.PHONE_DIGITS:
            return _rejected(
                state,
                f"Enter a valid {StudioConfig.PHONE_DIGITS}-digit phone number",
                "phone",
            )
        new_state["phone"] = digits
        new_state["phoneStage"] = "otp_entry"
        return WizardOutcome(state=new_state)

    if ctype == "OTP_VERIFIED":
        if step != "phone_verify" or new_state.get("phoneStage") != "otp_entry":
            return _invalid(state, ctype)
        code = InputSanitizer.phone_digits(cmd.get("code"))
        raw_code = str(cmd.get("code") or "").strip()
        if len(code) != StudioConfig.OTP_DIGITS or code != raw_code:
            return _rejected(
                state, f"Enter the {StudioConfig.OTP_DIGITS}-digit code", "code"
            )
        user_id = cmd.get("userId")
        if _is_blank(user_id):
            return _rejected(state, "Verification did not return a user", "code")
        new_state["userId"] = str(user_id)
        new_state["phoneStage"] = "verified"
        _complete(new_state, "phone_verify", "personal_info")
        return WizardOutcome(state=new_state)

    if ctype == "CHANGE_PHONE":
        new_state["phone"] = ""
        new_state["userId"] = None
        new_state["phoneStage"] = "phone_entry"
        new_state["step"] = "phone_verify"
        new_state["completedSteps"] = []
        return WizardOutcome(state=new_state)

    if ctype == "SUBMIT_PERSONAL_INFO":
        if step != "personal_info":
            return _invalid(state, ctype)
        for field in PERSONAL_FIELDS:
            if field in cmd:
                new_state[field] = cmd.get(field)
        # Keep what the user typed even when the gate rejects it.
        missing = [f for f in PERSONAL_FIELDS if f != "eventId" and _is_blank(new_state.get(f))]
        if missing:
            return _rejected(new_state, "Please fill in all personal details", missing[0])
        if _is_blank(new_state.get("eventId")):
            return _rejected(new_state, "Please select an event", "eventId")
        try:
            info = PersonalInfo(**{f: new_state.get(f) for f in PERSONAL_FIELDS})
        except PydanticValidationError as e:
            field, message = first_error(e)
            return _rejected(new_state, message, field)
        new_state.update(info.model_dump())
        _complete(new_state, "personal_info", "story_details")
        return WizardOutcome(state=new_state)

    if ctype == "SUBMIT_STORY_DETAILS":
        if step != "story_details":
            return _invalid(state, ctype)
        for field in STORY_FIELDS:
            if field in cmd:
                new_state[field] = cmd.get(field)
        required = [f for f in STORY_FIELDS if f not in {"mediaName", "mediaContentType"}]
        missing = [f for f in required if _is_blank(new_state.get(f))]
        if missing:
            return _rejected(new_state, "Please complete all story details", missing[0])
        if _is_blank(new_state.get("mediaName")):
            return _rejected(new_state, "Please attach your story file", "mediaName")
        try:
            details = StoryDetails(**{f: new_state.get(f) for f in STORY_FIELDS})
        except PydanticValidationError as e:
            field, message = first_error(e)
            return _rejected(new_state, message, field)
        new_state.update(details.model_dump())
        _complete(new_state, "story_details", "review")
        return WizardOutcome(state=new_state)

    if ctype == "GO_BACK":
        if step != "story_details":
            return _invalid(state, ctype)
        new_state["step"] = "personal_info"
        return WizardOutcome(state=new_state)

    if ctype == "MARK_SUBMITTED":
        if step != "review":
            return _invalid(state, ctype)
        registration_id = cmd.get("registrationId")
        if _is_blank(registration_id):
            raise ValueError("MARK_SUBMITTED requires registrationId")
        new_state["registrationId"] = str(registration_id)
        new_state["idempotencyKey"] = cmd.get("idempotencyKey") or idempotency_key(
            new_state.get("userId"), new_state.get("eventId")
        )
        _complete(new_state, "review", "submitted")
        return WizardOutcome(state=new_state)

    raise ValueError(f"Unknown wizard command type: {ctype}")


def apply_wizard_command(state: WizardState, cmd: WizardCommand) -> WizardOutcome:
    """Apply a wizard command without touching `state` (returns a new dict)."""
    return _apply_transition(state, cmd)


def registration_record(state: Dict[str, Any], media_url: str | None) -> Dict[str, Any]:
    """Row inserted into `registrations` for a reviewed wizard state."""
    return {
        "event_id": state.get("eventId"),
        "user_id": state.get("userId"),
        "phone": state.get("phone"),
        "first_name": state.get("firstName"),
        "last_name": state.get("lastName"),
        "age": state.get("age"),
        "email": state.get("email"),
        "city": state.get("city"),
        "story_title": state.get("storyTitle"),
        "category": state.get("category"),
        "class_level": state.get("classLevel"),
        "description": state.get("description"),
        "media_url": media_url,
        "overall_votes": 0,
        "overall_views": 0,
        "idempotency_key": idempotency_key(state.get("userId"), state.get("eventId")),
    }


class RegistrationWizard:
    """Runs the wizard against the backend collaborators.

    Every completion is guarded by a liveness flag: once close() is called
    (the view went away), late results are dropped instead of committed.
    """

    def __init__(
        self,
        backend: StudioBackend,
        *,
        webhook_url: str | None = StudioConfig.WEBHOOK_URL,
        media_bucket: str = StudioConfig.MEDIA_BUCKET,
        state: Dict[str, Any] | None = None,
    ):
        self.backend = backend
        self.webhook_url = webhook_url
        self.media_bucket = media_bucket
        self.state: Dict[str, Any] = state if state is not None else default_wizard_state()
        self.media: bytes | None = None
        self.pending = False
        self._alive = True

    @property
    def step(self) -> str:
        return self.state["step"]

    def close(self) -> None:
        self._alive = False

    def _commit(self, outcome: WizardOutcome) -> WizardError | None:
        if not self._alive:
            logger.debug("Wizard closed; dropping late result")
            return outcome.error
        self.state = outcome.state
        return outcome.error

    def _external_failure(self, message: str, error: BackendError) -> WizardError:
        logger.warning(f"{message}: {error}")
        return WizardError(kind="external_failure", message=message)

    def request_otp(self, phone: str) -> WizardError | None:
        outcome = apply_wizard_command(self.state, {"type": "REQUEST_OTP", "phone": phone})
        if not outcome.ok:
            return outcome.error
        self.pending = True
        try:
            self.backend.auth.send_otp(outcome.state["phone"])
        except BackendError as e:
            return self._external_failure("Could not send the verification code", e)
        finally:
            self.pending = False
        return self._commit(outcome)

    def verify_otp(self, code: str) -> WizardError | None:
        if self.step != "phone_verify" or self.state.get("phoneStage") != "otp_entry":
            return _invalid(self.state, "OTP_VERIFIED").error
        digits = InputSanitizer.phone_digits(code)
        if len(digits) != StudioConfig.OTP_DIGITS:
            return WizardError(
                kind="validation",
                message=f"Enter the {StudioConfig.OTP_DIGITS}-digit code",
                field="code",
            )
        self.pending = True
        try:
            user_id = self.backend.auth.verify_otp(self.state["phone"], digits)
        except BackendError as e:
            return self._external_failure("The verification code was not accepted", e)
        finally:
            self.pending = False
        outcome = apply_wizard_command(
            self.state, {"type": "OTP_VERIFIED", "code": digits, "userId": user_id}
        )
        return self._commit(outcome)

    def change_phone(self) -> WizardError | None:
        return self._commit(apply_wizard_command(self.state, {"type": "CHANGE_PHONE"}))

    def submit_personal_info(self, **fields: Any) -> WizardError | None:
        cmd = {"type": "SUBMIT_PERSONAL_INFO", **fields}
        return self._commit(apply_wizard_command(self.state, cmd))

    def submit_story_details(self, media: bytes | None = None, **fields: Any) -> WizardError | None:
        cmd = {"type": "SUBMIT_STORY_DETAILS", **fields}
        outcome = apply_wizard_command(self.state, cmd)
        if outcome.ok and media is None and self.media is None:
            return WizardError(
                kind="validation", message="Please attach your story file", field="mediaName"
            )
        if outcome.ok and media is not None:
            self.media = media
        return self._commit(outcome)

    def go_back(self) -> WizardError | None:
        return self._commit(apply_wizard_command(self.state, {"type": "GO_BACK"}))

    def _is_duplicate(self) -> bool:
        event_id = self.state.get("eventId")
        phone = self.state.get("phone")
        rows = self.backend.tables.select(
            "registrations", {"event_id": event_id}, columns="id, phone"
        )
        return any(InputSanitizer.phone_digits(row.get("phone")) == phone for row in rows)

    def confirm(self) -> WizardError | None:
        """Final confirmation from the review step.

        Order: duplicate check, media upload, registration insert, then a
        best-effort webhook forward that never blocks success.
        """
        if self.step == "submitted":
            logger.info(f"Registration {self.state.get('registrationId')} already submitted")
            return None
        if self.step != "review":
            return _invalid(self.state, "MARK_SUBMITTED").error

        self.pending = True
        try:
            try:
                duplicate = self._is_duplicate()
            except BackendError as e:
                return self._external_failure("Could not check existing registrations", e)
            if duplicate:
                return WizardError(
                    kind="duplicate_registration",
                    message=(
                        "This phone number is already registered for the selected event. "
                        "Please choose a different event."
                    ),
                    field="eventId",
                )

            media_url = None
            if self.media is not None and self.backend.storage is not None:
                key = idempotency_key(self.state.get("userId"), self.state.get("eventId"))
                filename = f"{self.state.get('userId')}/{key[4:16]}-{self.state.get('mediaName')}"
                try:
                    media_url = self.backend.storage.upload(self.media_bucket, filename, self.media)
                except BackendError as e:
                    return self._external_failure("Could not upload your story file", e)

            record = registration_record(self.state, media_url)
            try:
                stored = self.backend.tables.insert("registrations", record)
            except BackendError as e:
                return self._external_failure("Could not save your registration", e)
        finally:
            self.pending = False

        registration_id = stored.get("id") if isinstance(stored, dict) else None
        if _is_blank(registration_id):
            logger.warning(f"Registration insert for event {record['event_id']} returned no id")
            return WizardError(
                kind="external_failure",
                message="Your registration could not be confirmed, please try again",
            )

        self._forward_to_webhook(record)
        outcome = apply_wizard_command(
            self.state,
            {
                "type": "MARK_SUBMITTED",
                "registrationId": registration_id,
                "idempotencyKey": record["idempotency_key"],
            },
        )
        error = self._commit(outcome)
        if error is None:
            logger.info(f"Registration {registration_id} submitted for event {record['event_id']}")
        return error

    def _forward_to_webhook(self, record: Dict[str, Any]) -> None:
        webhook = self.backend.webhook
        if webhook is None or not self.webhook_url:
            return
        files = None
        if self.media is not None:
            files = {"media": (self.state.get("mediaName") or "story", self.media)}
        try:
            webhook.post(self.webhook_url, fields=record, files=files)
        except Exception as e:
            logger.warning(f"Webhook forward failed (ignored): {e}")
