"""
services/ — Database-facing operations of the quote engine.

Services take a Session as their first argument, own their transaction,
and raise the errors in exceptions.py. The pure decision logic they call
lives in scoring.py, bonus.py, ranking.py and lifecycle.py.
"""
