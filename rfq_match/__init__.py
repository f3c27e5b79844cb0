"""RFQ matching engine: opportunity/business scoring, ranking and partnership synthesis."""

__version__ = "0.1.0"
