"""
Rule-based chat assistant.

Rules are checked in order; the first rule with a keyword contained in
the lower-cased message wins.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

RULES: list[tuple[tuple[str, ...], str]] = [
    (
        ("appointment", "book", "schedule"),
        "To book an appointment, go to the Appointments section in your dashboard. "
        "You can select your preferred doctor and available time slots.",
    ),
    (
        ("prescription", "medicine", "medication"),
        "Your prescriptions can be found in the Prescriptions section. You can view active "
        "prescriptions, refill requests, and share them with pharmacies.",
    ),
    (
        ("health id", "health-id", "abha"),
        "Your health ID links your health records across the national health network. "
        "You can manage consent requests in your profile.",
    ),
    (
        ("consent", "permission", "access"),
        "Consent management allows you to control who can access your health data. "
        "You can approve or deny access requests from doctors and healthcare providers.",
    ),
    (
        ("emergency", "urgent", "help"),
        "For medical emergencies, please contact your nearest hospital or call emergency "
        "services immediately. This app is for non-emergency health management.",
    ),
    (
        ("doctor", "consultation"),
        "You can find and consult with doctors through the app. Browse available doctors, "
        "view their specializations, and book consultations.",
    ),
    (
        ("pharmacy", "medicine shop"),
        "Use the pharmacy section to find nearby pharmacies, share your prescriptions, "
        "and track medicine availability.",
    ),
    (
        ("health record", "medical history"),
        "Your health records are securely stored and can be accessed through your dashboard. "
        "You can share them with healthcare providers as needed.",
    ),
    (
        ("hello", "hi", "hey"),
        "Hello! I'm your healthcare assistant. I can help you with appointments, prescriptions, "
        "health-ID services, and general health management questions.",
    ),
    (
        ("thank", "thanks"),
        "You're welcome! I'm here to help with any healthcare-related questions you may have.",
    ),
]

SUGGESTIONS = [
    "Book an appointment",
    "View prescriptions",
    "Manage health records",
    "Find nearby pharmacies",
]


def match_reply(message: str) -> str:
    text = message.lower()
    for keywords, reply in RULES:
        if any(keyword in text for keyword in keywords):
            return reply
    return (
        f'I understand you\'re asking about "{message}". I can help with appointments, prescriptions, '
        "health-ID services, health records, and connecting with healthcare providers. For specific "
        "medical advice, please consult with a qualified healthcare professional."
    )


def respond(message: str, context: str | None = None) -> dict[str, Any]:
    return {
        "message": match_reply(message),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "context": context or "general",
        "suggestions": list(SUGGESTIONS),
    }
