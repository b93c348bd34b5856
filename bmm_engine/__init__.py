"""
BMM Registration Engine

Registration lifecycle, special-vote eligibility, recipient segmentation,
ticketing and check-in for a biennial membership meeting.

Engine Truths:
- A member's stage and flags never disagree
- Preview and send select the same members
- A ticket is issued at most once; a check-in counts at most once
- One recipient's failure never blocks another recipient
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
