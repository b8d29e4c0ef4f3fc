"""
Call Summary Service - German AI summaries of a client's call notes via a local
Ollama-compatible LLM.

The summary is stored on the client row. When the LLM is disabled or fails the
caller gets a placeholder text and the error is logged; nothing is retried.
"""

import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional

import requests
from flask import current_app
from sqlalchemy.orm import Session

from constants import MAX_AI_SUMMARY_WORDS
from database.models import CallNote, Client
from exceptions import ValidationError
from services.ownership import get_owned

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "AI-Zusammenfassung wird gerade generiert…"


def build_prompt(notes: List[CallNote], client_name: str) -> str:
    """Fact-only German prompt; notes are expected oldest first."""
    lines = [
        f"Analysiere die folgenden Gesprächsnotizen für Kunde '{client_name}' und erstelle eine "
        f"objektive, faktenbasierte Zusammenfassung auf Deutsch.",
        "",
        "WICHTIGE ANFORDERUNGEN:",
        "- Bleibe strikt bei den dokumentierten Fakten",
        "- Spekuliere NICHT über Absichten oder Motive",
        "- Verwende nur Informationen aus den Notizen",
        "- Gib keine Interpretation oder Bewertung ab",
        "",
        "Strukturiere die Zusammenfassung wie folgt:",
        "1. Dokumentierte Interessen (nur konkret genannte)",
        "2. Vereinbarte oder angeforderte Follow-up-Aktionen",
        "3. Chronologischer Verlauf der Gespräche",
        "4. Nächste konkrete Schritte (falls dokumentiert)",
        "",
        "Gesprächsnotizen:",
        "================",
        "",
    ]
    for i, note in enumerate(notes, 1):
        lines.append(f"Notiz {i} ({note.call_date.strftime('%d.%m.%Y %H:%M')}):")
        lines.append(f"Typ: {note.call_type}")
        lines.append(f"Ergebnis: {note.outcome or 'Nicht angegeben'}")
        lines.append(f"Betreff: {note.subject}")
        lines.append(f"Inhalt: {note.notes}")
        if note.property is not None:
            lines.append(f"Bezug zu Immobilie: {note.property.title}")
        if note.follow_up_required and note.follow_up_date:
            lines.append(f"Follow-up bis: {note.follow_up_date.strftime('%d.%m.%Y')}")
        lines.extend(["", "---", ""])

    lines.append(f"Erstelle eine prägnante, objektive Zusammenfassung auf Deutsch "
                 f"(maximal {MAX_AI_SUMMARY_WORDS} Wörter). "
                 f"Nutze nur die dokumentierten Fakten ohne Interpretation.")
    return '\n'.join(lines)


class CallSummaryService:

    def __init__(self, session: Session, agent_id: str, config: Optional[Mapping] = None):
        self.session = session
        self.agent_id = agent_id
        config = config if config is not None else current_app.config
        self.enabled = bool(config.get('OLLAMA_ENABLED', False))
        self.base_url = config.get('OLLAMA_BASE_URL', 'http://localhost:11434').rstrip('/')
        self.model = config.get('OLLAMA_MODEL', 'llama3.2:3b')
        self.timeout = int(config.get('OLLAMA_TIMEOUT', 60))
        self.max_tokens = int(config.get('OLLAMA_MAX_TOKENS', 500))

    def is_available(self) -> bool:
        if not self.enabled:
            return False
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            return response.ok
        except requests.exceptions.RequestException as e:
            logger.warning(f"Ollama service is not available: {e}")
            return False

    def _call_llm(self, prompt: str) -> str:
        response = requests.post(
            f"{self.base_url}/api/generate",
            json={
                'model': self.model,
                'prompt': prompt,
                'stream': False,
                'options': {'temperature': 0.7, 'num_predict': self.max_tokens}
            },
            timeout=self.timeout
        )
        response.raise_for_status()
        text = (response.json().get('response') or '').strip()
        if not text:
            raise ValueError("LLM returned an empty response")
        return text

    def _fallback(self, client: Client, note_count: int) -> Dict:
        return {
            'client_id': client.id,
            'available': False,
            'summary': FALLBACK_SUMMARY,
            'call_note_count': note_count,
            'updated_at': None
        }

    def generate_summary(self, client_id: str) -> Dict:
        """
        Summarize all call notes of a client and store the result.

        Raises:
            ValidationError: if the client has no call notes
        """
        client = get_owned(self.session, Client, client_id, self.agent_id, 'Client')
        notes = self.session.query(CallNote).filter(
            CallNote.client_id == client.id,
            CallNote.agent_id == self.agent_id
        ).order_by(CallNote.call_date.asc(), CallNote.id).all()
        if not notes:
            raise ValidationError("Client has no call notes to summarize", field='client_id')

        if not self.enabled:
            logger.info("AI summary requested but Ollama is disabled")
            return self._fallback(client, len(notes))

        logger.info(f"Generating AI summary for client {client.id} with model {self.model}")
        try:
            summary = self._call_llm(build_prompt(notes, client.full_name))
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Failed to generate AI summary for client {client.id}: {e}")
            return self._fallback(client, len(notes))

        client.ai_summary = summary
        client.ai_summary_updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Stored AI summary for client {client.id} ({len(summary)} chars)")

        return {
            'client_id': client.id,
            'available': True,
            'summary': summary,
            'call_note_count': len(notes),
            'updated_at': client.ai_summary_updated_at.isoformat()
        }

    def get_summary(self, client_id: str, refresh: bool = False) -> Dict:
        """Return the stored summary, generating one if there is none yet."""
        client = get_owned(self.session, Client, client_id, self.agent_id, 'Client')
        if client.ai_summary and not refresh:
            note_count = self.session.query(CallNote).filter(CallNote.client_id == client.id).count()
            logger.debug(f"Returning stored AI summary for client {client.id}")
            return {
                'client_id': client.id,
                'available': True,
                'summary': client.ai_summary,
                'call_note_count': note_count,
                'updated_at': client.ai_summary_updated_at.isoformat() if client.ai_summary_updated_at else None
            }
        return self.generate_summary(client_id)
