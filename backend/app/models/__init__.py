from .problem_competitor import ProblemCompetitor

__all__ = ["ProblemCompetitor"]
