"""
Services Package for SiteSmith

- generation/: backend-facing generation core (retry, prompts, models, SEO)
- turn_controller.py: per-session state machine
- session_registry.py: controller lookup and background loop
- session_store.py: persistence collaborators
- publish_service.py / export_service.py: deployment and download packaging
"""
