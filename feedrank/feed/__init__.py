"""Candidate sourcing and feed assembly."""

from .assembler import SOURCE_EXPLANATIONS, FeedAssembler
from .sourcer import CandidateSourcer, dedupe

__all__ = ["CandidateSourcer", "FeedAssembler", "SOURCE_EXPLANATIONS", "dedupe"]
