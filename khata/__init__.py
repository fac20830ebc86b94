"""
Khoroch Khata - Source Package

A local-first personal expense/income tracker. Several profiles share one
on-device state document; nothing ever leaves the device except through an
explicit backup file or sync code.

DESIGN PRINCIPLES:
1. One authoritative state document, rewritten on every accepted change
2. Derived views are pure and always recomputed from the document
3. Imports are validated in full before anything is replaced
4. A failed operation leaves the state exactly as it was
"""

__version__ = "1.0.0"
__author__ = "Khoroch Khata Team"
