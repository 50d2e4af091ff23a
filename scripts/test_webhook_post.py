#!/usr/bin/env python3
from __future__ import annotations

import argparse
import hashlib
import hmac
import json
import time
from typing import Any

import httpx
from httpx import ConnectError


def build_payload(sender_id: str, phone_number_id: str, text: str) -> dict[str, Any]:
    now_s = int(time.time())
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "waba_0",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"phone_number_id": phone_number_id},
                            "contacts": [{"wa_id": sender_id, "profile": {"name": "Test User"}}],
                            "messages": [
                                {
                                    "from": sender_id,
                                    "id": f"wamid.local{now_s}",
                                    "timestamp": str(now_s),
                                    "type": "text",
                                    "text": {"body": text},
                                }
                            ],
                        },
                    }
                ],
            }
        ],
    }


def sign_body(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def main() -> None:
    parser = argparse.ArgumentParser(description="Send a test WhatsApp webhook POST")
    parser.add_argument("--url", default="http://127.0.0.1:3000/webhook")
    parser.add_argument("--sender", default="911234567890")
    parser.add_argument("--phone-number-id", default="100000000000000")
    parser.add_argument("--text", default="hi")
    parser.add_argument("--app-secret", default="", help="App secret for X-Hub-Signature-256")
    args = parser.parse_args()

    payload = build_payload(args.sender, args.phone_number_id, args.text)
    body = json.dumps(payload).encode("utf-8")

    headers = {"Content-Type": "application/json"}
    if args.app_secret:
        headers["X-Hub-Signature-256"] = sign_body(args.app_secret, body)

    try:
        resp = httpx.post(args.url, content=body, headers=headers, timeout=10.0)
    except ConnectError:
        print("Connection refused. Is the FastAPI server running?")
        print("Try: uvicorn chatrelay.main:app --reload --port 3000")
        return

    print(resp.status_code)
    if resp.text:
        print(resp.text)


if __name__ == "__main__":
    main()
