"""Application layer: store, query views, codec and the engine facade."""
