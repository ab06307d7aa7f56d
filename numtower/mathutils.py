#
# Digit generation and elementary functions at arbitrary precision
#
# The constant algorithms work in integer fixed point: a quantity x is held
# as the integer floor(x * 10**p). Each carries GUARD_DIGITS beyond the
# requested precision so that a single final rounding is correct, and every
# loop has a bound that depends only on the requested number of digits.
#
# The elementary functions work on Decimals inside a local context and
# return results with guard digits; callers round them into a value's
# precision context.
#
from __future__ import annotations

import math

from decimal           import Decimal, localcontext

GUARD_DIGITS = 10
GAMMA_ALPHA = 3.5911   # root of alpha * (ln(alpha) - 1) = 1, for Brent-McMillan

def fixed_to_decimal(value: int, scale: int) -> Decimal:
    "Exact Decimal for the fixed-point integer `value` with `scale` fractional digits."
    return Decimal(f'{value}E-{scale}')

def series_limit(digits: int) -> int:
    "Upper bound on terms for the Taylor series used below."
    return 4 * digits + 4 * GUARD_DIGITS + 50


#
# Constants
#

def arccot_fixed(x: int, unity: int) -> int:
    "arccot(x) = atan(1/x) in fixed point, for integer x > 1."
    term = unity // x
    total = term
    x_squared = x * x
    n = 1
    sign = -1
    while term:
        term //= x_squared
        n += 2
        total += sign * (term // n)
        sign = -sign
    return total

def machin_pi(digits: int) -> Decimal:
    "pi = 16 atan(1/5) - 4 atan(1/239), with guard digits."
    scale = digits + GUARD_DIGITS
    unity = 10 ** scale
    pi = 4 * (4 * arccot_fixed(5, unity) - arccot_fixed(239, unity))
    return fixed_to_decimal(pi, scale)

def euler_e(digits: int) -> Decimal:
    "e as the sum of 1/k!, with guard digits."
    scale = digits + GUARD_DIGITS
    term = 10 ** scale
    total = term
    k = 1
    while term:
        term //= k
        total += term
        k += 1
    return fixed_to_decimal(total, scale)

def sqrt_fixed(n: int, digits: int) -> Decimal:
    scale = digits + GUARD_DIGITS
    return fixed_to_decimal(math.isqrt(n * 10 ** (2 * scale)), scale)

def golden_ratio(digits: int) -> Decimal:
    scale = digits + GUARD_DIGITS
    unity = 10 ** scale
    return fixed_to_decimal((unity + math.isqrt(5 * unity * unity)) // 2, scale)

def euler_gamma(digits: int) -> Decimal:
    """The Euler-Mascheroni constant by the Brent-McMillan algorithm.

    With A_0 = -ln n, B_0 = 1 the recurrences
        B_k = B_{k-1} n^2 / k^2,   A_k = (A_{k-1} n^2 / k + B_k) / k
    give gamma ~ sum(A_k) / sum(B_k) with error O(exp(-4n)). Terms are
    negligible once k exceeds GAMMA_ALPHA * n, which bounds the loop.
    """
    scale = digits + 2 * GUARD_DIGITS
    unity = 10 ** scale
    n = int(scale * math.log(10) / 4) + 1
    with localcontext() as ctx:
        ctx.prec = scale + GUARD_DIGITS
        ln_n = Decimal(n).ln()
        a = -int(ln_n.scaleb(scale))
    b = unity
    u, v = a, b
    n_squared = n * n
    for k in range(1, int(GAMMA_ALPHA * n) + 2):
        b = b * n_squared // (k * k)
        a = (a * n_squared // k + b) // k
        u += a
        v += b
    return fixed_to_decimal(u * unity // v, scale)


#
# Elementary functions on Decimals
#

def pi_decimal(digits: int) -> Decimal:
    return machin_pi(digits)

def cos_sin(x: Decimal, digits: int) -> tuple[Decimal, Decimal]:
    "Cosine and sine of x radians to `digits` significant digits plus guard digits."
    with localcontext() as ctx:
        ctx.prec = digits + GUARD_DIGITS + max(0, x.adjusted())
        two_pi = 2 * pi_decimal(ctx.prec)
        turns = (x / two_pi).to_integral_value()
        x = x - turns * two_pi
        epsilon = Decimal(1).scaleb(-ctx.prec - 2)
        x_squared = x * x
        cos_term = Decimal(1)
        sin_term = x
        cos_total = cos_term
        sin_total = sin_term
        for n in range(1, series_limit(digits)):
            cos_term = -cos_term * x_squared / ((2 * n - 1) * (2 * n))
            sin_term = -sin_term * x_squared / ((2 * n) * (2 * n + 1))
            cos_total += cos_term
            sin_total += sin_term
            if abs(cos_term) < epsilon and abs(sin_term) < epsilon:
                break
        return +cos_total, +sin_total

def atan(x: Decimal, digits: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = digits + GUARD_DIGITS
        if x.is_zero():
            return Decimal(0)
        negative = x < 0
        x = abs(x)
        inverted = x > 1
        if inverted:
            x = 1 / x
        # atan(x) = 2 atan(x / (1 + sqrt(1 + x^2))) shrinks the argument
        doublings = 0
        while x > Decimal('0.1') and doublings < 8:
            x = x / (1 + (1 + x * x).sqrt())
            doublings += 1
        epsilon = Decimal(1).scaleb(-ctx.prec - 2)
        x_squared = x * x
        power = x
        total = x
        for n in range(1, series_limit(digits)):
            power = -power * x_squared
            term = power / (2 * n + 1)
            total += term
            if abs(term) < epsilon:
                break
        total *= 2 ** doublings
        if inverted:
            total = pi_decimal(ctx.prec) / 2 - total
        return -total if negative else +total

def atan2(y: Decimal, x: Decimal, digits: int) -> Decimal:
    "Angle of the point (x, y) in (-pi, pi]; zero for the origin."
    with localcontext() as ctx:
        ctx.prec = digits + GUARD_DIGITS
        if x.is_zero():
            if y.is_zero():
                return Decimal(0)
            half_pi = pi_decimal(ctx.prec) / 2
            return half_pi if y > 0 else -half_pi
        angle = atan(y / x, ctx.prec)
        if x > 0:
            return angle
        pi = pi_decimal(ctx.prec)
        return angle + pi if y >= 0 else angle - pi

def nth_root(x: Decimal, n: int, digits: int) -> Decimal:
    "Principal real n-th root of a non-negative Decimal."
    if x.is_zero():
        return Decimal(0)
    with localcontext() as ctx:
        ctx.prec = digits + GUARD_DIGITS
        return x ** (Decimal(1) / n)
