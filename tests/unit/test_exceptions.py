from __future__ import annotations

from genrouter.exceptions import (
    GENERIC_FAILURE_MESSAGE,
    JobNotFoundError,
    ProviderUnavailableError,
    describe_failure,
    redact_secrets,
)


def test_redact_secrets_strips_tokens_and_literals():
    text = (
        "401 from upstream: Authorization: Key abc123 / Bearer xyz.789 "
        'payload {"apiKey": "rw-secret"} raw fal-secret'
    )

    redacted = redact_secrets(text, ("fal-secret", None, ""))

    assert "abc123" not in redacted
    assert "xyz.789" not in redacted
    assert "rw-secret" not in redacted
    assert "fal-secret" not in redacted
    assert redacted.startswith("401 from upstream")


def test_describe_failure_is_generic_outside_debug():
    exc = ProviderUnavailableError("fal submit failed", provider="fal", attempts=3)

    assert describe_failure(exc) == GENERIC_FAILURE_MESSAGE
    assert describe_failure(exc, debug=True) == "fal submit failed"


def test_describe_failure_falls_back_to_class_name():
    assert describe_failure(RuntimeError(), debug=True) == "RuntimeError"


def test_job_not_found_message_is_not_quoted():
    assert str(JobNotFoundError("Job 'fal_x' not found")) == "Job 'fal_x' not found"


def test_describe_failure_accepts_stored_messages():
    assert describe_failure("Key fal-secret rejected", debug=True, secrets=("fal-secret",)) == "Key *** rejected"
    assert describe_failure(None, debug=True) == GENERIC_FAILURE_MESSAGE
    assert describe_failure("upstream said no") == GENERIC_FAILURE_MESSAGE
