"""Shared constants for the pitwall assistant core.

Centralises the conversation-window size, prompt truncation lengths and the
numeric defaults used by the strategy simulator.
"""

from __future__ import annotations

# Conversation window: the stored log and the history slice sent to the model
# both hold at most 2 * MAX_TURNS entries (user + assistant per turn).
MAX_TURNS: int = 12

# Context digest truncation lengths (characters). The prompt budget is tied to
# these, so they are exact.
DIGEST_HEADERS_CHARS: int = 160
DIGEST_ANALYSIS_CHARS: int = 360
DIGEST_COMMENTARY_CHARS: int = 360
DIGEST_NOTABLE_COLUMNS: int = 5

# A value is an outlier when |z| >= this, using population std
OUTLIER_Z_THRESHOLD: float = 2.0

# Strategy simulator defaults for omitted inputs
DEFAULT_BASE_LAP_TIME_S: float = 90.0
DEFAULT_FUEL_PER_LAP: float = 0.12
DEFAULT_TANK_SIZE: float = 8.0
DEFAULT_PIT_LOSS_S: float = 22.0
DEFAULT_TIRE_DEGRADATION_PER_LAP_S: float = 0.08
DEFAULT_SAFETY_CAR_DELTA_S: float = -7.0

SYSTEM_INSTRUCTION: str = (
    "You are Pitwall, a concise, helpful technical assistant. Use short bullet points "
    "when advising. Admit uncertainty. Keep replies under ~200 words unless asked."
)

# Returned in place of a reply the model produced in an unusable shape
NO_REPLY_PLACEHOLDER: str = "[no reply]"
