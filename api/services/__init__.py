"""Service layer for the render pipeline.

Routes stay thin: they gather raw parameters and hand them to a service.

Layer hierarchy:
    Routes (HTTP) -> Services (normalize, dispatch) -> Renderers (rendering/)

normalize_service turns raw parameters into validated specs.
render_service drives a spec through its renderer and builds the response,
including the error image / PDF when anything fails.
"""
