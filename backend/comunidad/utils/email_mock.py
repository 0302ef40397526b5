import json
from datetime import datetime
from pathlib import Path

from flask import current_app


def _outbox_path() -> Path:
	configured = current_app.config.get("EMAIL_OUTBOX_PATH")
	if configured:
		return Path(configured)
	return Path(__file__).resolve().parents[2] / "tmp" / "email_outbox.jsonl"


def send_email(to: str, subject: str, body: str) -> None:
	"""Mock de envío de email.

	En lugar de enviar correos reales, guarda el mensaje en un outbox local
	(una línea JSON por correo).
	"""

	to_s = (to or "").strip()
	subject_s = (subject or "").strip()
	body_s = body or ""

	out_file = _outbox_path()
	out_file.parent.mkdir(parents=True, exist_ok=True)

	payload = {
		"to": to_s,
		"subject": subject_s,
		"body": body_s,
		"created_at": datetime.utcnow().replace(microsecond=0).isoformat() + "Z",
	}

	with out_file.open("a", encoding="utf-8") as f:
		f.write(json.dumps(payload, ensure_ascii=False) + "\n")

	current_app.logger.info("[email_mock] to=%s subject=%s", to_s, subject_s)


def leer_outbox() -> list[dict]:
	out_file = _outbox_path()
	if not out_file.exists():
		return []
	with out_file.open("r", encoding="utf-8") as f:
		return [json.loads(line) for line in f if line.strip()]
