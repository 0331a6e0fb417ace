"""
Codeground Pattern Library
===========================

Declarative rule tables shared by the verifiers. Every table is an
ordered tuple of immutable rules; order is precedence.

Components:
    - lexicon.py:        number words, stop words, synonyms, hedges
    - rules.py:          first-match / all-matches dispatchers
    - claims.py:         claim → verification question rules
    - relationships.py:  extends/implements/returns/... extraction and checks
    - queries.py:        paraphrase templates and fact patterns
"""
