"""MTG Commander Analyzer

Analyzes Commander decklists against category templates and power bracket
rules, and builds skeleton decks from a commander with optional EDHREC autofill.
"""

__version__ = "0.1.0"
__author__ = "MTG Commander Analyzer"
__description__ = "Analyze and build MTG Commander decks against templates and bracket rules"
