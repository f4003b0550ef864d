"""
Strategy Implementations

- grid: price-grid decision engine (BUY legs below focus, SELL legs above)
"""
