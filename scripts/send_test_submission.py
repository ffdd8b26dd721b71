#!/usr/bin/env python3
"""
Dev helper: post a test form submission to the local forms backend.

Builds a quote, assessment or callback form post, optionally attaches image
files to a quote, sends it to /api/forms/<form> and prints where the backend
redirected to plus the banner sentence the page would show.

Usage
-----
# Basic - quote request targeting localhost:8000
python scripts/send_test_submission.py

# Assessment booking for tomorrow
python scripts/send_test_submission.py --form assessment

# Callback request from a specific address
python scripts/send_test_submission.py --form callback --email someone@example.com

# Quote with photos attached
python scripts/send_test_submission.py --file kitchen.png --file lounge.jpg

# Pretend to be a bot (fills the honeypot field)
python scripts/send_test_submission.py --honeypot

# Print the form fields without sending
python scripts/send_test_submission.py --dry-run

# Target a different backend URL
python scripts/send_test_submission.py --url http://staging.example.com

Environment / .env
------------------
FORMS_API_URL   Backend base URL (default: http://localhost:8000).
                Overridden by --url.
"""

import argparse
import json
import mimetypes
import os
import sys
from datetime import date, timedelta
from pathlib import Path

import httpx
from dotenv import load_dotenv

_DEFAULT_URL = "http://localhost:8000"


# ---------------------------------------------------------------------------
# Form builders
# ---------------------------------------------------------------------------

def build_fields(form: str, email: str, honeypot: bool = False) -> dict[str, str]:
    """Return a valid set of form fields for ``form``."""
    if form == "quote":
        fields = {
            "fullName": "Test Customer",
            "phone": "082 123 4567",
            "email": email,
            "serviceType": "Water Damage / Flood",
            "address": "1 Test Street, Sandton, Johannesburg",
            "description": "Burst geyser.\nCeiling and carpets soaked.",
        }
    elif form == "assessment":
        fields = {
            "serviceType": "flood",
            "fullName": "Test Customer",
            "phone": "082 123 4567",
            "preferredDate": (date.today() + timedelta(days=1)).isoformat(),
            "preferredTime": "09:00",
            "location": "johannesburg",
            "severity": "moderate",
        }
    elif form == "callback":
        fields = {"callbackEmail": email}
    else:
        raise ValueError(f"Unknown form {form!r}")

    fields["website"] = "http://spam.example.com" if honeypot else ""
    return fields


def build_files(paths: list[str]) -> list[tuple[str, tuple[str, bytes, str]]]:
    """Load ``paths`` into the (field, (name, bytes, type)) tuples httpx expects."""
    files = []
    for raw in paths:
        path = Path(raw)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        files.append(("attachments", (path.name, path.read_bytes(), content_type)))
    return files


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Send a test form submission.")
    parser.add_argument("--form", choices=["quote", "assessment", "callback"], default="quote")
    parser.add_argument("--email", default="john@example.co.za", help="Submitter e-mail")
    parser.add_argument("--file", action="append", default=[], help="Image to attach (quote only)")
    parser.add_argument("--honeypot", action="store_true", help="Fill the hidden honeypot field")
    parser.add_argument("--url", default=os.getenv("FORMS_API_URL", _DEFAULT_URL))
    parser.add_argument("--dry-run", action="store_true", help="Print the fields and exit")
    args = parser.parse_args()

    fields = build_fields(args.form, args.email, honeypot=args.honeypot)
    files = build_files(args.file) if args.form == "quote" else []
    base_url = args.url.rstrip("/")
    endpoint = f"{base_url}/api/forms/{args.form}"

    print(f"Endpoint  : {endpoint}")
    print(f"Form      : {args.form}")
    print(f"Files     : {', '.join(name for _, (name, _, _) in files) or 'none'}")

    if args.dry_run:
        print("\n[DRY RUN] Fields:")
        print(json.dumps(fields, indent=2))
        return 0

    try:
        response = httpx.post(
            endpoint,
            data=fields,
            files=files or None,
            follow_redirects=False,
            timeout=30,
        )
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the backend running? Start it with:\n"
            "  cd backend && uvicorn app.main:app --reload",
            file=sys.stderr,
        )
        return 1

    location = response.headers.get("location", "")
    print(f"\nHTTP {response.status_code} -> {location or '(no redirect)'}")
    if response.status_code != 303:
        print(response.text)
        return 1

    query = httpx.URL(location).params
    banner = httpx.get(
        f"{base_url}/api/forms/status",
        params={"status": query.get("status"), "reason": query.get("reason"), "form": args.form},
        timeout=10,
    )
    print(f"Banner    : {banner.json().get('message')}")
    return 0 if query.get("status") == "success" else 1


if __name__ == "__main__":
    sys.exit(main())
