"""
Custom exception hierarchy for ThemeCrate.
"""

class ThemeCrateError(Exception):
    """Base exception for all themecrate errors."""
    pass

class RegistryError(ThemeCrateError):
    pass

class SettingsQueryError(ThemeCrateError):
    """A desktop settings backend could not answer. Never shown to the user."""
    pass

class ConfigError(ThemeCrateError):
    pass

class ConfigValidationError(ConfigError):
    pass

class ResolutionError(ThemeCrateError):
    pass

class EscalationUnavailableError(ResolutionError):
    pass

class EscalationFailedError(ResolutionError):
    pass

class ClipboardError(ThemeCrateError):
    pass

class BackupError(ThemeCrateError):
    pass

class BackupRootError(BackupError):
    pass

class BackupExistsError(BackupError):
    pass

class InvalidBackupNameError(BackupError):
    pass
