"""Расчёт назальности по двухканальным записям ротового и носового воздушного потока."""

__version__ = '0.1.0'
