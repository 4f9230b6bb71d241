"""Smoke test manual contra un servidor corriendo (uvicorn main:app)."""
import secrets
import sys

import requests

BASE_URL = "http://localhost:8000"


def random_wallet():
    return "0x" + secrets.token_hex(20)


def submit(game_id, score, duration, wallet, name=None):
    payload = {
        "gameId": game_id,
        "score": score,
        "durationSeconds": duration,
        "playerAddress": wallet,
    }
    if name:
        payload["displayName"] = name
    return requests.post(f"{BASE_URL}/api/submit-score", json=payload, timeout=10)


def expect(condition, message):
    if not condition:
        print(f"FAIL: {message}")
        sys.exit(1)
    print(f"ok: {message}")


def main():
    health = requests.get(f"{BASE_URL}/api/health", timeout=5)
    expect(health.status_code == 200, f"health {health.json()}")

    games = requests.get(f"{BASE_URL}/api/games", timeout=5).json()["games"]
    rule = games[0]
    game_id, max_score, min_duration = rule["id"], rule["maxScore"], rule["minDuration"]

    alice, bob = random_wallet(), random_wallet()

    resp = submit(game_id, max_score + 1, min_duration, alice)
    expect(resp.status_code == 400 and resp.json()["error"] == "score_out_of_bounds", "score over max rejected")

    resp = submit(game_id, 10, min_duration - 1, alice)
    expect(resp.status_code == 400 and resp.json()["error"] == "duration_too_short", "too fast rejected")

    # Scores altos para que aparezcan arriba aunque la base no esté vacía
    resp = submit(game_id, max_score - 1, min_duration, alice, "alice-smoke")
    expect(resp.status_code == 200, f"alice submitted: {resp.json()}")
    alice_rank = resp.json()["rank"]

    resp = submit(game_id, max_score - 1, min_duration, alice, "alice-smoke")
    expect(resp.json().get("error") == "duplicate_submission", "resubmission rejected")

    resp = submit(game_id, max_score, min_duration, bob, "bob-smoke")
    expect(resp.status_code == 200, f"bob submitted: {resp.json()}")
    expect(resp.json()["rank"] <= alice_rank, "bob ranks at least as high as alice")

    board = requests.get(f"{BASE_URL}/api/leaderboard/{game_id}", params={"limit": 50}, timeout=5).json()
    wallets = [e["playerAddress"] for e in board["entries"]]
    expect(alice in wallets and bob in wallets, "both players on the per-game board")
    expect(wallets.index(bob) < wallets.index(alice), "bob above alice")

    total = requests.get(f"{BASE_URL}/api/leaderboard/global", params={"limit": 100}, timeout=5).json()
    by_wallet = {e["playerAddress"]: e for e in total["entries"]}
    if alice in by_wallet:
        expect(by_wallet[alice]["totalScore"] == max_score - 1, "alice global total")

    print("All leaderboard checks passed")


if __name__ == "__main__":
    main()
