"""
dindex REST API.

Thin FastAPI layer over :mod:`dindex.ops`. Build the app with
:func:`dindex.api.app.create_app`; run it with ``dindex serve start``.
"""
