"""Allows `python -m aixcel`."""
from aixcel.main import main

if __name__ == "__main__":
    main()
