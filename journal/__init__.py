"""Compare-log review, tags and the backtest queue."""
