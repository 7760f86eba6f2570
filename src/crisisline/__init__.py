"""
CRISISLINE - Crisis Detection and Escalation Service

This package provides the backend for crisis detection on assessment
answers and inbound SMS, the escalation protocol that responds to a
detected risk, and the messaging gateway that carries those responses
to and from the SMS carrier.

IMPORTANT: This is a safety-critical system. A detected crisis must
always produce a bounded, auditable response, even when the carrier fails.
"""

__version__ = "0.1.0"
__author__ = "CRISISLINE Engineering Team"
