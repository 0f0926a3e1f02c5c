"""
MIT License

Copyright (c) 2025 Pan Yu

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.

Author: Pan Yu
"""

import math


class Range:
  """
  Closed interval [minr, maxr] narrowed or widened one bound at a time.
  
  Range.open() starts unbounded on both sides and is narrowed with
  exclude_less_than / exclude_greater_than. Range.empty() starts inverted and is
  widened with insert.
  """
  
  def __init__(self, minr: float, maxr: float):
    self.minr = float(minr)
    self.maxr = float(maxr)
  
  @classmethod
  def open(cls) -> 'Range':
    """Interval covering the whole real line."""
    return cls(-math.inf, math.inf)
  
  @classmethod
  def empty(cls) -> 'Range':
    """Interval containing nothing."""
    return cls(math.inf, -math.inf)
  
  def exclude_less_than(self, x: float) -> None:
    """Raise the lower bound to x if x is above it."""
    if x > self.minr:
      self.minr = float(x)
  
  def exclude_greater_than(self, x: float) -> None:
    """Lower the upper bound to x if x is below it."""
    if x < self.maxr:
      self.maxr = float(x)
  
  def insert(self, x: float) -> None:
    """Widen the interval so that it contains x."""
    if x < self.minr:
      self.minr = float(x)
    if x > self.maxr:
      self.maxr = float(x)
  
  def size(self) -> float:
    return self.maxr - self.minr
  
  def is_empty(self) -> bool:
    return self.maxr < self.minr
  
  def contains(self, x: float) -> bool:
    return self.minr <= x <= self.maxr
  
  def __contains__(self, x: float) -> bool:
    return self.contains(x)
  
  def __eq__(self, other):
    if not isinstance(other, Range):
      return NotImplemented
    return self.minr == other.minr and self.maxr == other.maxr
  
  def __repr__(self):
    return f"Range({self.minr}, {self.maxr})"
