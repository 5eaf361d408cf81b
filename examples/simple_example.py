#!/usr/bin/python
# -*- coding: utf-8 -*-

"""
=========================================================
Simple example
=========================================================
Polynomial basis functions fitted to a handful of points. The cubic term is
usually pruned.
"""
print(__doc__)

import numpy as np

from basis_rvm import train, predict_interval, predict_mean, predict_stddev


def constant(x):
    return 1.0


def linear(x):
    return x


def square(x):
    return x ** 2


def cube(x):
    return x ** 3


X = np.array([1, 3, 5, 6, 7, 8, 8.5, 9])
y = np.array([3, -2, 3, 8, 20, 12, 7.0, 10])

model = train(X, y, [constant, linear, square, cube], random_state=0)

print("Relevant basis functions: {}".format(
    [phi.__name__ for phi in model.basis_set]))
print("Weights: {}".format(model.mean))
print("Noise precision: {}".format(model.beta))

x = np.linspace(0, 10, 11)
lower, upper = predict_interval(x, model)
for xi, mean, std, lo, hi in zip(x, predict_mean(x, model),
                                 predict_stddev(x, model), lower, upper):
    print("x={:5.1f}  mean={:7.2f}  std={:5.2f}  95%: [{:7.2f}, {:7.2f}]"
          .format(xi, mean, std, lo, hi))
