from prsync.core.overrides.retriever import OverridesRetriever

__all__ = ["OverridesRetriever"]
