"""
The MODEL layer contains pure data structures and grid logic.
It has NO knowledge of the GUI (Qt) or the network.
It deals with Cells, Coordinates, Selections, Viewports and fill patterns.
"""
