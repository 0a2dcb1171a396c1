"""
ClickUp Ticket Assistant - free text in, structured ClickUp tickets out.

Model output is normalized into validated contracts, tried across an ordered
list of model candidates, with a keyword heuristic as the last resort.
"""

__version__ = "1.0.0"
