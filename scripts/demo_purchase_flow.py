"""Demo: walk checkout → signed webhook → lesson access using TestClient.

Run with:
    STRIPE_WEBHOOK_SECRET=whsec_demo python scripts/demo_purchase_flow.py
"""

from __future__ import annotations

import hashlib
import hmac
import json
import os
import time

os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_demo")
os.environ.setdefault("APP_ENV", "dev")

from fastapi.testclient import TestClient  # noqa: E402

from course_access.main import app  # noqa: E402
from course_access.services import token_service  # noqa: E402

USER = "demo-learner"


def _signed(body: bytes) -> str:
    ts = int(time.time())
    secret = os.environ["STRIPE_WEBHOOK_SECRET"].encode()
    sig = hmac.new(secret, f"{ts}.".encode() + body, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def main() -> None:
    headers = {"Authorization": f"Bearer {token_service.create_access_token(sub=USER)}"}

    with TestClient(app) as client:
        # ── Seed data (dev mode seeds one sample course) ──────────────────
        store = app.state.store
        course = next(iter(store.catalog._courses.values()))
        lessons = client.get(f"/v1/courses/{course.id}").json()["lessons"]
        first_lesson = lessons[0]["id"]
        print(f"0. Course {course.title!r} with {len(lessons)} lessons")

        # ── Step 1: locked before purchase ────────────────────────────────
        r = client.get(f"/v1/lessons/{first_lesson}", headers=headers)
        print(f"1. GET  /v1/lessons/…            → {r.status_code}  (not purchased)")

        # ── Step 2: start checkout ────────────────────────────────────────
        r = client.post(
            "/v1/checkout/sessions", json={"course_id": str(course.id)}, headers=headers
        )
        session_id = r.json()["session_id"]
        print(f"2. POST /v1/checkout/sessions    → {r.status_code}  {session_id}")

        # ── Step 3: provider delivers the completion event (twice) ────────
        event = {
            "id": "evt_demo",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": session_id,
                    "metadata": {"userId": USER, "courseId": str(course.id)},
                }
            },
        }
        body = json.dumps(event).encode()
        for attempt in (1, 2):
            r = client.post(
                "/v1/webhooks/payments",
                content=body,
                headers={"Stripe-Signature": _signed(body)},
            )
            print(f"3.{attempt} POST /v1/webhooks/payments → {r.status_code}  {r.json()}")

        # ── Step 4: unlocked, record progress ─────────────────────────────
        r = client.get(f"/v1/lessons/{first_lesson}", headers=headers)
        print(f"4. GET  /v1/lessons/…            → {r.status_code}")

        r = client.put(
            f"/v1/courses/{course.id}/lessons/{first_lesson}/progress",
            json={"completed": True},
            headers=headers,
        )
        print(f"5. PUT  …/progress               → {r.status_code}")

        r = client.get(f"/v1/courses/{course.id}/progress", headers=headers)
        print(f"6. GET  /v1/courses/…/progress   → {r.status_code}  {r.json()}")

        r = client.get("/v1/users/me/purchases", headers=headers)
        print(f"7. GET  /v1/users/me/purchases   → total={r.json()['total']}")


if __name__ == "__main__":
    main()
