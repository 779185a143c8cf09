from .narrative import Narrative, BeliefEdge
