from __future__ import annotations

from pyavail._redact import REDACTED, mask_cookie_header, redact_for_log
from pyavail.session import Cookie


def test_redact_for_log_hides_form_secrets() -> None:
    form = {"user": "buyer@example.com", "psswd": "pw", "mode": "logon", "session_secret": "s"}

    redacted = redact_for_log(form)

    assert redacted == {"user": "buyer@example.com", "psswd": REDACTED, "mode": "logon", "session_secret": REDACTED}


def test_redact_for_log_masks_cookie_header_values_but_keeps_names() -> None:
    headers = {"Cookie": "SID=abc; MYSAPSSO2=xyz; ", "x-csrf-token": "tok", "accept": "*/*"}

    redacted = redact_for_log(headers)

    assert redacted["Cookie"] == f"SID={REDACTED}; MYSAPSSO2={REDACTED}; "
    assert redacted["x-csrf-token"] == REDACTED
    assert redacted["accept"] == "*/*"


def test_redact_for_log_masks_cookie_jars() -> None:
    browser_jar = [{"name": "SID", "value": "abc", "domain": "b2bportal.bsh-partner.com"}]
    models = [Cookie(name="JSESSIONID", value="0001", domain="order.subzero.com")]

    assert redact_for_log(browser_jar) == [{"name": "SID", "value": REDACTED, "domain": "b2bportal.bsh-partner.com"}]
    (masked,) = redact_for_log(models)
    assert masked["name"] == "JSESSIONID"
    assert masked["value"] == REDACTED


def test_mask_cookie_header_handles_flags_and_empty() -> None:
    assert mask_cookie_header("") == ""
    assert mask_cookie_header("a=1; HttpOnly") == f"a={REDACTED}; HttpOnly; "


def test_redact_for_log_truncates_long_strings_and_summarizes_bytes() -> None:
    redacted = redact_for_log({"body": "x" * 600}, max_string=10)
    assert redacted["body"].startswith("x" * 10)
    assert "<truncated>" in redacted["body"]
    assert redact_for_log(b"\x00\x01\x02") == "<bytes:3b>"
