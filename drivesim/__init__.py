"""
drivesim — Drive & PLC Simulation Core

Timer-driven simulation of industrial devices:
- Parameter profiles, interactions and alarm rules (PLC session)
- Variable Frequency Drive state machine with fault injection
- Lossy-transport emulation, bounded history and ML anomaly scoring
"""

__version__ = "1.0.0"
