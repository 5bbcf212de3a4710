"""Festive TODO backend"""
