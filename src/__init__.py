# Stepwise - Source Package
"""
Stepwise: a headless engine for multi-step resource-creation wizards.

Modules:
    wizard: Definitions, validation, dependency cascades and the controller
    wizard.pages: The built-in resource wizards
    storage: YAML draft persistence
    app.core: Configuration, logging and the Redis status channel
    main: Command line entry point
"""

__version__ = "0.1.0"
