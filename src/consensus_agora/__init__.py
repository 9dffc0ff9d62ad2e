"""Consensus Agora - LLM meetings that run to unanimous agreement.

A moderator model drives a fixed set of LLM participants through
discussion, parallel voting and dissent resolution until every
participant agrees or the voting rounds run out.
"""

__version__ = "0.1.0"
__author__ = "Consensus Agora Team"

# Package metadata
__all__ = [
    "__version__",
    "__author__",
]
