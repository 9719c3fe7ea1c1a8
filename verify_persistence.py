import time
import subprocess
import httpx
import sys
import os
import signal
import uuid

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/api"

ADMIN_PHONE = os.getenv("ADMIN_INIT_PHONE", "13000000000")
ADMIN_PASSWORD = os.getenv("ADMIN_INIT_PASSWORD", "persist-admin-pw")


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for i in range(retries):
        try:
            resp = httpx.get(url)
            if resp.status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False


def start_server():
    return subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "backend.app.main:app", "--host", "127.0.0.1", "--port", "8000"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env={
            **os.environ,
            "ADMIN_INIT_ENABLED": "true",
            "ADMIN_INIT_PHONE": ADMIN_PHONE,
            "ADMIN_INIT_PASSWORD": ADMIN_PASSWORD,
        },
    )


def stop_server(proc):
    proc.send_signal(signal.SIGTERM)
    proc.wait()


def login():
    resp = httpx.post(
        f"{BASE_URL}{API_PREFIX}/auth/login",
        json={"phone": ADMIN_PHONE, "password": ADMIN_PASSWORD},
    )
    if resp.status_code != 200:
        raise Exception(f"Login failed: {resp.status_code} {resp.text}")
    return {"Authorization": f"Bearer {resp.json()['accessToken']}"}


def post_donation(headers, request_id):
    payload = {
        "donor": "Persistence Check",
        "donatedAt": "2024-01-15",
        "amount": "12.34",
        "requestId": request_id,
    }
    return httpx.post(f"{BASE_URL}{API_PREFIX}/ledger/donations", json=payload, headers=headers)


def run_verification():
    request_id = f"persist-{uuid.uuid4().hex}"

    # 1. Start Server (First Run), admin bootstrapped at startup
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = start_server()

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        print("\n--- [Step 2] Recording Donation ---")
        resp = post_donation(login(), request_id)
        if resp.status_code != 201:
            raise Exception(f"Donation failed: {resp.status_code} {resp.text}")
        entry_id = resp.json()["entryId"]
        print(f"✅ Donation recorded as entry {entry_id} (request id {request_id})")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        stop_server(proc)

    time.sleep(2)  # Wait for port release

    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = start_server()

    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        print("\n--- [Step 5] Replaying Donation (Post-Restart) ---")
        resp = post_donation(login(), request_id)
        if resp.status_code != 201 or resp.json()["entryId"] != entry_id:
            raise Exception(f"Replay did not return entry {entry_id}: {resp.status_code} {resp.text}")
        if resp.headers.get("Idempotent-Replayed") != "true":
            raise Exception("Replay was not flagged as replayed")
        print("✅ Replay returned the original entry (idempotency key persisted!)")

    finally:
        print("\n--- [Step 6] Stopping Server ---")
        stop_server(proc2)


if __name__ == "__main__":
    run_verification()
