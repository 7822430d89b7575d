"""Core module - assignment controller, selection state and helpers.

Import from the submodules directly; the service clients depend on
`app.core.errors`, so this package does not re-export the controller.
"""
