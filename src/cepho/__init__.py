"""CEPHO Document Pipeline.

Composes branded business documents, scores them, runs an automated QA
review and records an auditable sign-off before a document is marked final.
"""

__version__ = "0.1.0"
