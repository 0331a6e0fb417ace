"""
Codeground: Claim Verification & Grounding for Codebase Answers
===============================================================

Codeground is the epistemic grounding layer of a codebase-knowledge
assistant: it checks that an answer about a repository is actually
true of that repository before the answer reaches a user or an agent.

Architecture Overview:
    Draft answer / citations / paraphrased answers
        → Verify (four independent checks) → typed verdicts + confidence

Modules:
    - patterns:  Declarative claim, relationship, query and fact rule tables
    - schemas:   Pydantic data contracts for every verdict
    - verify:    AST reference verifier, citation grounding pipeline,
                 chain-of-verification engine, consistency checker
    - engine:    Facade wiring all verifiers from configuration
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
