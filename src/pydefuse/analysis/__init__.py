"""Analyses over Python statement trees: CFG, control dependence and dataflow."""
