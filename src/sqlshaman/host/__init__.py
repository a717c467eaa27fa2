"""SQLAlchemy host: model builder patch, contexts and raw command access.

Import from the submodules (``sqlshaman.host.context``,
``sqlshaman.host.model_builder``, ...) or from the top-level package.
"""
