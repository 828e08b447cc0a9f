"""
PaperLens Storage Module
Persists finished interpretations keyed by document identity.
"""

from .document_identity import DocumentIdentity
from .interpretation_store import InterpretationStore, StoredInterpretation

__all__ = ['DocumentIdentity', 'InterpretationStore', 'StoredInterpretation']
