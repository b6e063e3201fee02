"""Query planner: decomposition, classification and dependency resolution."""
