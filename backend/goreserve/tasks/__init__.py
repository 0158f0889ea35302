# backend/goreserve/tasks/__init__.py
"""
Celery tasks package for GoReserve.

The worker loads task modules through ``celery_app.conf.imports``; this
package does not import them so producers (enqueue_task) stay light.
"""
