# ui_server.py
# Flask backend for The Lighthouse at Tugrul Bay.
# Stateless: every request carries the player's full state snapshot, the server only
# forwards it to Mistral and relays {command, narration, ...} back to the client.
#
#   GET  /                liveness
#   POST /interpret       player text -> engine command + narration
#   POST /api/interpret   same handler, kept for older clients

from __future__ import annotations

import os
from flask import Flask, request, jsonify

from lighthouse_game import (
    MistralChat,
    TranslationServiceError,
    LANGUAGES,
    SECRET_PASSWORD,
    dev_log,
    normalize_language,
    snapshot_from_request,
    state_summary,
)

PORT = int(os.getenv("PORT", "4000"))

app = Flask(__name__)

# ---------- Upstream client (no session state lives here) ----------
CLIENT = MistralChat()

if not CLIENT.available():
    print("WARNING: MISTRAL_API_KEY is not set. Set it in your shell and restart the server.")
    dev_log("CONFIG_ERROR: MISTRAL_API_KEY missing; /interpret will answer 500")


@app.after_request
def allow_cross_origin(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


def _request_language(data: dict, snapshot: dict) -> str:
    """The client's selected language wins over anything the model echoes."""
    tag = data.get("language")
    if isinstance(tag, str) and tag.strip().lower() in LANGUAGES:
        return normalize_language(tag)
    return snapshot["language"]


# ---------- Routes ----------
@app.route("/")
def index():
    return jsonify({"status": "ok", "message": "Text adventure backend is running."})


@app.route("/interpret", methods=["POST"])
@app.route("/api/interpret", methods=["POST"])
def interpret():
    data = request.get_json(force=True, silent=True)
    data = data if isinstance(data, dict) else {}

    player_input = data.get("input")
    if not isinstance(player_input, str) or not player_input.strip():
        return jsonify({"error": "Missing 'input' string in body."}), 400

    if not CLIENT.available():
        return jsonify({"error": "MISTRAL_API_KEY not configured on server."}), 500

    snapshot = snapshot_from_request(data.get("state"))
    language = _request_language(data, snapshot)
    snapshot["language"] = language
    summary = state_summary(snapshot)

    failure = data.get("failure")
    try:
        if isinstance(failure, dict):
            narration = CLIENT.explain_failure(
                str(failure.get("command") or player_input),
                str(failure.get("reason") or ""),
                summary,
                language,
            )
            return jsonify({"command": "", "narration": narration, "language": language})

        parsed = CLIENT.interpret(player_input.strip(), summary, language)
    except TranslationServiceError as e:
        dev_log(f"INTERPRET_ERROR: {e}")
        return jsonify({"error": "Internal server error"}), 500

    payload = {
        "command": parsed.command,
        "narration": parsed.narration,
        "language": language,
    }
    if parsed.puzzle_progress:
        payload["puzzleProgress"] = parsed.puzzle_progress

    # completion is only ever confirmed from the client's own snapshot; the model's password is dropped
    if snapshot["gameComplete"] and all(snapshot["puzzleProgress"].values()):
        payload["gameComplete"] = True
        payload["password"] = SECRET_PASSWORD
    elif parsed.game_complete is not None:
        payload["gameComplete"] = False

    dev_log(f"INTERPRET_RESULT: {payload['command']!r} room={snapshot['currentRoomId']} lang={language}")
    return jsonify(payload)


if __name__ == "__main__":
    print(f"Game backend listening on http://127.0.0.1:{PORT}")
    app.run(host="0.0.0.0", port=PORT)
