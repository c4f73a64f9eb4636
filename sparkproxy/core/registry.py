"""Bridge registry for breaking circular imports.

Routes fetch the bridge from here instead of importing the main module.
"""

# Global bridge instance - set by main.create_app during initialization
bridge = None


def set_bridge(bridge_instance):
    """Set the global bridge instance."""
    global bridge
    bridge = bridge_instance


def get_bridge():
    """Get the global bridge instance."""
    if bridge is None:
        raise RuntimeError("Bridge not initialized. Did you call set_bridge?")
    return bridge
