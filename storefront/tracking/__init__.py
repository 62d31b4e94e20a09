"""
Online user and activity tracking pipeline.

    classifier     skip/continue decision for a request
    browser_id     stable per-browser identifier
    referrer       referrer/URL sanitizing, client IP and source
    session_state  guest/customer session state machine (pure)
    activity       activity classification and entity attribution (pure)
    events         domain events emitted by storefront handlers
    service        database-backed tracking operations
    queue          background job channel
"""
