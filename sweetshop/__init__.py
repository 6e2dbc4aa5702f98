"""
Sweet Shop inventory and purchase service.

A FastAPI application exposing authentication, inventory CRUD, search,
purchases and admin restocks over a relational store.
"""
__version__ = "1.0.0"
