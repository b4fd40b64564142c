"""Error taxonomy for scoring, allocation and simulation"""


class QuadrantGuardError(Exception):
    """Base exception for quadrant guard errors"""
    pass


class InvalidInputError(QuadrantGuardError):
    """A contribution or request payload is missing a required field or is malformed"""
    pass


class ConfigurationError(QuadrantGuardError):
    """Scoring, generation or simulation settings are invalid"""
    pass


class SimulationStateError(QuadrantGuardError):
    """A simulation stage was invoked out of order"""
    pass
