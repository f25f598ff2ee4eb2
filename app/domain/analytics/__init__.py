"""
Volume analytics bounded context: domain layer.

This module contains all domain logic for the analytics context:
- Volume series bucketing and statistics
- Pattern detection
- Multi-signal volume forecasting and fusion
- Market regime classification
- Trading recommendations
"""
