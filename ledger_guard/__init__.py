"""
Ledger Guard - Source Package

Suggests debit/credit accounts for imported transactions and validates
every proposed posting against layered accounting rules before approval.

DESIGN PRINCIPLES:
1. Heuristics (or an LLM) suggest -> Rules verify -> Human approves
2. Fail early, fail visibly
3. Overrides relax a rule's blocking effect, never hide its findings
4. Every decision is auditable
5. Diagnostics sinks are swappable
"""

__version__ = "1.0.0"
__author__ = "Ledger Guard Team"
