#!/usr/bin/env python3
"""
PICSORPIX launcher script.

Run this from the project root to start the gallery without installing it.
"""

if __name__ == '__main__':
    from picsorpix.run_gui import main
    main()
