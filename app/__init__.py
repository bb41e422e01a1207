"""
Game wheel application package.

Layered the same way throughout:

  app/repositories/  - pure I/O: loading from and persisting to JSON files.
  app/services/      - business logic: validation, selection, domain rules.
  app/schema.py      - document shapes shared by the server and the client cache.
  app/errors.py      - the error taxonomy, each carrying its HTTP status.

``GameWheel`` (in ``gamewheel.py``) is the integration point: it creates the
repository and service instances for one data directory and exposes them as
public attributes (e.g. ``wheel.suggestions``).  Route handlers in
``gamewheel_web.py`` call those services directly.
"""
