"""TypeRank: typing-session scoring, achievements and ledger-backed leaderboards."""

__version__ = "0.1.0"
