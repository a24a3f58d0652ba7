"""Manual smoke run against a live API (uvicorn on :8000, worker running).

JWT_SECRET and PAYMENT_WEBHOOK_SECRET must match the server's environment.
"""

import json
import time
import urllib.error
import urllib.request
from datetime import datetime, timedelta, timezone

from src.fp_common.enums import UserRole
from src.fp_gateway.auth.jwt_handler import create_access_token
from src.fp_payment.infrastructure.simulated_provider import SimulatedPaymentProvider

BASE = "http://localhost:8000/api/v1"

def _send(req):
    try:
        with urllib.request.urlopen(req) as r:
            return json.loads(r.read())
    except urllib.error.HTTPError as e:
        return json.loads(e.read())

def post(path, body=None, token=None, raw=None, headers=None):
    data = raw if raw is not None else json.dumps(body or {}).encode()
    req = urllib.request.Request(
        f"{BASE}{path}",
        data=data,
        headers={"Content-Type": "application/json", **(headers or {})}
    )
    if token:
        req.add_header("Authorization", f"Bearer {token}")
    return _send(req)

def get(path, token=None, params=None):
    url = f"{BASE}{path}"
    if params:
        url += "?" + "&".join(f"{k}={v}" for k, v in params.items())
    req = urllib.request.Request(url)
    if token:
        req.add_header("Authorization", f"Bearer {token}")
    return _send(req)

def webhook(payment_id, status):
    raw = json.dumps({"paymentId": payment_id, "status": status, "providerRef": f"ch_{payment_id[:8]}"}).encode()
    return post("/payments/webhook", raw=raw, headers={"X-Signature": SimulatedPaymentProvider().sign(raw)})

def section(title):
    print(f"\n{'='*60}")
    print(f"### {title} ###")
    print('='*60)

def label(name):
    print(f"\n--- {name} ---")

def out(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))

# ── Tokens ─────────────────────────────────────────────────────
section("TOKENS")

TU = create_access_token("smoke_user", UserRole.USER)
TT = create_access_token("smoke_trainer", UserRole.TRAINER)
TA = create_access_token("smoke_admin", UserRole.ADMIN)
print(f"  TU  = {TU[:40]}...")
print(f"  TT  = {TT[:40]}...")
print(f"  TA  = {TA[:40]}...")

# ── T1 Payments ────────────────────────────────────────────────
section("T1 — PAYMENTS")

label("T1-1: Create booking_quota payment (5 sessions)")
r = post("/payments", {"amount_cents": 12500, "currency": "USD",
                       "metadata": {"purpose": "booking_quota", "quotaTotal": 5}}, TU)
out(r)
PAY1 = r.get("data", {}).get("payment", {}).get("id", "")

label("T1-2: Unsupported currency")
out(post("/payments", {"amount_cents": 100, "currency": "GBP",
                       "metadata": {"purpose": "booking_quota", "quotaTotal": 1}}, TU))

label("T1-3: Webhook completed")
out(webhook(PAY1, "completed"))

label("T1-4: Same webhook again (no-op)")
out(webhook(PAY1, "completed"))

label("T1-5: Late webhook failed (ignored, stays completed)")
out(webhook(PAY1, "failed"))

label("T1-6: Bad signature")
out(post("/payments/webhook", {"paymentId": PAY1, "status": "failed"}, headers={"X-Signature": "bad"}))

label("T1-7: Cancel a pending payment")
r = post("/payments", {"amount_cents": 2500, "currency": "EUR",
                       "metadata": {"purpose": "booking_quota", "quotaTotal": 1}}, TU)
out(post(f"/payments/{r.get('data', {}).get('payment', {}).get('id', '')}/cancel", {"reason": "smoke"}, TU))

# ── T2 Quotas & bookings ───────────────────────────────────────
section("T2 — QUOTAS & BOOKINGS")

label("T2-1: Wait for the worker to provision the quota")
QUOTA = ""
for _ in range(10):
    items = get("/bookings/quotas", TU).get("data", {}).get("items", [])
    match = [q for q in items if q["payment_id"] == PAY1]
    if match:
        QUOTA = match[0]["id"]
        out(match[0])
        break
    time.sleep(1)
else:
    print("  quota not provisioned, is the worker running?")

label("T2-2: Book one session")
date = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()
r = post("/bookings", {"quota_id": QUOTA, "gym_id": "gym-smoke", "trainer_id": "smoke_trainer", "date": date}, TU)
out(r)
BOOKING = r.get("data", {}).get("booking", {}).get("id", "")

label("T2-3: Trainer confirms")
out(post(f"/bookings/{BOOKING}/confirm", token=TT))

label("T2-4: User cancels (unit refunded)")
out(post(f"/bookings/{BOOKING}/cancel", token=TU))

label("T2-5: Cancel again (invalid transition)")
out(post(f"/bookings/{BOOKING}/cancel", token=TU))

# ── T3 Trainer offerts ─────────────────────────────────────────
section("T3 — TRAINER OFFERTS")

label("T3-1: Trainer creates offert with 8 bundled bookings")
r = post("/trainer-offerts", {"title": "Smoke coaching", "price_cents": 9900, "currency": "USD",
                              "duration_in_days": 30, "includes_bookings": True, "booking_quota": 8}, TT)
out(r)
OFFERT = r.get("data", {}).get("id", "")

label("T3-2: User buys the subscription")
r = post("/payments", {"amount_cents": 9900, "currency": "USD",
                       "metadata": {"purpose": "trainer_subscription", "offertId": OFFERT}}, TU)
PAY2 = r.get("data", {}).get("payment", {}).get("id", "")
out(webhook(PAY2, "completed"))

label("T3-3: Subscriptions (after worker)")
time.sleep(3)
out(get("/trainer-offerts/subscriptions", TU))

# ── T4 Admin ───────────────────────────────────────────────────
section("T4 — ADMIN")

label("T4-1: Non-admin is rejected")
out(get("/admin/invariants", TU))

label("T4-2: Ledger invariants")
out(get("/admin/invariants", TA))
