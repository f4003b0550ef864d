"""
Control surface for grid orders
"""
