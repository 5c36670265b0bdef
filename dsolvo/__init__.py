"""Building blocks for direct sparse visual odometry: geometry, cameras, frames, direct cost helpers and motion models."""

__version__ = "0.1.0"
__all__ = ["camera", "direct", "extra", "frame", "geometry"]