"""
Helpers the chat layer uses to build a verification request from context.
"""

import re
from typing import List, Optional

MAX_KEY_TERMS = 8
MAX_RULE_TERMS = 3

# "Rule 6.1", "Section 32-706", "IRFLP 120", "28 USC 1738A" (the "USC 1738A" part)
RULE_PATTERN = re.compile(
    r"(?:Rule|Section|Statute|Code|IRFLP|IRCP|USC|CFR)\s*\d+[A-Za-z]?(?:\.\d+)?",
    re.IGNORECASE,
)

LEGAL_TERMS = [
    "child support", "custody", "parenting time", "visitation", "alimony", "spousal support",
    "income shares", "worksheet", "guidelines", "modification", "enforcement",
    "property division", "marital assets", "discovery", "deposition", "subpoena",
    "motion", "hearing", "trial", "order", "judgment", "decree",
]

MODULE_TOPICS = {
    "evidence": "court evidence rules",
    "timeline": "case timeline documentation",
    "documents": "legal document requirements",
    "trial-prep": "trial preparation procedures",
    "child-support": "child support calculation guidelines",
    "parenting-plan": "parenting plan requirements",
}
DEFAULT_TOPIC = "family law court procedures"


def extract_key_terms_from_text(text: str, state: Optional[str] = None) -> List[str]:
    """
    Pull key terms for verification out of free text.

    Order: jurisdiction name, up to three rule/statute references, then any
    vocabulary terms present. Duplicates are dropped and the list is capped.

    Args:
        text: User message or draft answer
        state: Jurisdiction name, if known

    Returns:
        Up to 8 key terms
    """
    terms = []

    if state:
        terms.append(state)

    terms.extend(RULE_PATTERN.findall(text or "")[:MAX_RULE_TERMS])

    lower_text = (text or "").lower()
    terms.extend(term for term in LEGAL_TERMS if term in lower_text)

    return list(dict.fromkeys(terms))[:MAX_KEY_TERMS]


def extract_topic_from_context(
    user_message: str, thread_title: Optional[str] = None, module_key: Optional[str] = None
) -> str:
    """
    Choose the topic string for title matching and the fallback search.

    Args:
        user_message: Latest user message
        thread_title: Conversation title, if any
        module_key: App module the user is in (e.g. 'child-support')

    Returns:
        The message if it is a reasonable length, else the thread title,
        else the module's default topic
    """
    user_message = user_message or ""
    if 10 < len(user_message) < 200:
        return user_message

    if thread_title and len(thread_title) > 5:
        return thread_title

    return MODULE_TOPICS.get(module_key or "", DEFAULT_TOPIC)
