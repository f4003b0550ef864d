"""
Trading Strategies Module

Grid decision engine and the components it is composed of.

Layout:
- implementations.grid: settings, models, thresholds, ledger, guard, engine
- components: persistence interfaces shared by the engine and its hosts
- control: control surface (initialize/start/stop/tick) used by the runner

Philosophy: Composition over Inheritance
"""
