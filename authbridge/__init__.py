"""Better Auth bridge package.

To use the Flask app:
    from authbridge.flask_app import create_app

To use the sync core without Flask:
    from authbridge.core.reconciler import SyncReconciler
    from authbridge.core.sync_handler import SyncHandler
"""
# Note: flask_app is not imported here so the CLI and the core stay
# importable without building an application.
