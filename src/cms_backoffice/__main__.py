"""
CLI entry point for the CMS back-office application
"""

if __name__ == "__main__":
    from . import main

    main()
