"""
Test suite for cardsim

Contains:
- tests/unit/ : Unit tests for engine components, host adapters and the API
"""
