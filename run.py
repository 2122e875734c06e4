"""
Entry Point Script (Bootstrap)
==============================
Development runner that works without installing the package.

Why is this file needed?
------------------------
1. It is located outside the 'src' package to act as a convenient runner.
2. It puts 'src' on 'sys.path' so 'from aixcel...' resolves from a checkout.

Usage:
    $ python run.py --backend-url http://127.0.0.1:6889 --sheet default
"""
import sys
import os

current_dir: str = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.join(current_dir, 'src'))

from aixcel.main import main

if __name__ == "__main__":
    main()
