"""Operator scripts for the election tracker."""
