# Project configuration for the BalanceFlow API: settings, root URLs and the
# WSGI/ASGI entry points.
