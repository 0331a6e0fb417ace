"""
Codeground Verification System
===============================

The four verifiers and their collaborators.

Components:
    - stats.py:          lock-guarded running counters
    - symbols.py:        symbol-table providers (Python ast, declaration scan)
    - ast_verifier.py:   line / function / class reference verification
    - citation.py:       citation grounding with method fallback
    - cove.py:           chain-of-verification engine
    - consistency.py:    cross-paraphrase consistency checker
"""
