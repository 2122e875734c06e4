"""
The CONTROLLER layer owns behaviour that needs the Qt event loop:
the per-sheet cell cache and its sync protocol, the backend and push channel
adapters, worker threads and the GridController that turns gestures into
selection changes and writes.
"""
