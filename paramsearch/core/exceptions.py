class ParamSearchError(Exception):
    """Base exception for the parameter search engine"""
    pass

class InvalidParameterRangeError(ParamSearchError, ValueError):
    """Parameter range or parameter space definition errors"""
    pass

class OptimizerError(ParamSearchError):
    """Optimizer usage errors"""
    pass

class UnknownOptimizerError(OptimizerError, ValueError):
    """Requested optimization method is not registered"""
    pass

class ConfigurationError(ParamSearchError):
    """Configuration related errors"""
    pass
