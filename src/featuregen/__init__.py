"""
featuregen - Generate the Liberty features an application needs.

Reconciles three views of a server's feature set into the single list of
features that still has to be declared:

- features implied by the project's declared ``esa`` dependencies
- features already declared in the server configuration
- features recommended by an application scanner plugin

Example usage:
    from featuregen import FeatureReconciler
    from featuregen.serverconfig import GeneratedFeaturesFile, ServerFeatureInventory

    reconciler = FeatureReconciler(
        inventory=ServerFeatureInventory(server_dir),
        visible_features={"servlet-4.0", "jsp-2.3"},
        writer=GeneratedFeaturesFile(config_dir, server_dir),
    )
    result = reconciler.reconcile(dependencies)
    print(sorted(result.missing_features))
"""

__version__ = "0.1.0"
__all__ = [
    "FeatureReconciler",
    "FeatureName",
    "parse_feature_name",
    "mp_level",
    "detect_platform",
    "__version__",
]


# Lazy imports to avoid loading pydantic and opentelemetry at import time
def __getattr__(name: str):
    if name == "FeatureReconciler":
        from featuregen.reconcile import FeatureReconciler
        return FeatureReconciler
    if name == "FeatureName":
        from featuregen.naming import FeatureName
        return FeatureName
    if name == "parse_feature_name":
        from featuregen.naming import parse_feature_name
        return parse_feature_name
    if name == "mp_level":
        from featuregen.compat import mp_level
        return mp_level
    if name == "detect_platform":
        from featuregen.platform import detect_platform
        return detect_platform
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
