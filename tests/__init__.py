"""Test package for the needle minigame.

Core tests drive the gauge, scheduler and controller with a fake clock; the
smoke tests run the pygame shell headlessly using SDL's dummy video driver.
Run ``pytest`` from the project root.
"""
