"""Feature modules of the disposable camera core."""
