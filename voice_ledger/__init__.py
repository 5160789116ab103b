"""
Voice Ledger - Source Package

A voice-driven revenue book (form S1a-HKD) for household businesses.
The owner speaks a sale, the AI turns it into ledger fields, the ledger is
kept on the device and exported as the spreadsheet the tax office expects.

DESIGN PRINCIPLES:
1. The in-memory ledger is authoritative; persistence is best-effort
2. AI failures cost one capture, never the ledger
3. No silent data loss: the last edit before a save always wins
4. Export output is deterministic
5. Storage and AI backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Voice Ledger Team"
