"""
Tasks Service package.

A small task API whose reads are served cache-aside:
- Reads check the cache, fall back to the store and repopulate the cache
- Writes hit the store first, then invalidate affected cache entries
- Cache outages degrade to store reads instead of failing requests

Structure:
- app.main: FastAPI app, routes, and component wiring.
- app.models: Task and response models.
- app.cache: Cache backends, statistics and the cache-aside manager.
- app.persistence: Task store adapters.
"""
