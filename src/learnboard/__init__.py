"""learnboard: enrollment state and quiz-performance aggregation engine."""

__version__ = "0.1.0"
