"""Node field, edge graph, engine and frame scheduler."""
