"""Phase weights, node records and the injectable random source."""
