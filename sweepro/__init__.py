"""SweepPro notification backend"""
