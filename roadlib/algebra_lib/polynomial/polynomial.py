class Polynomial:
    def __init__(self, params):
        self.params = list(params)

    def differential(self, x, order):
        temp = 1.0
        i = 1
        result = 0.0
        if order >= len(self.params):
            return result
        while i <= order:
            temp *= i
            i += 1
        result += temp * self.params[i - 1]
        while i < len(self.params):
            temp *= x * i / (i - order)
            result += temp * self.params[i]
            i += 1
        return result


class Poly3(Polynomial):
    """
    三次多项式 a + b*t + c*t^2 + d*t^3，车道宽度、车道偏移、paramPoly3 分量都用它表示。
    """
    def __init__(self, a=0.0, b=0.0, c=0.0, d=0.0) -> None:
        super().__init__([a, b, c, d])

    @property
    def a(self):
        return self.params[0]

    @property
    def b(self):
        return self.params[1]

    @property
    def c(self):
        return self.params[2]

    @property
    def d(self):
        return self.params[3]

    def __repr__(self):
        return f"a:= {self.a}, b:= {self.b}, c:= {self.c}, d:= {self.d}"

    def value(self, t):
        return self.a + t * (self.b + t * (self.c + t * self.d))

    def slope(self, t):
        return self.b + t * (2.0 * self.c + 3.0 * self.d * t)

    def curvature_proxy(self, t):
        # 二阶导数
        return 2.0 * self.c + 6.0 * self.d * t

    def third_derivative(self):
        return self.differential(0.0, 3)

    def rebase(self, delta) -> "Poly3":
        """
        泰勒平移：返回 q，使 q(t) == self(t + delta)。
        """
        return Poly3(self.value(delta),
                     self.slope(delta),
                     self.curvature_proxy(delta) / 2.0,
                     self.d)

    def add(self, other: "Poly3") -> "Poly3":
        return Poly3(self.a + other.a, self.b + other.b, self.c + other.c, self.d + other.d)

    def negate(self) -> "Poly3":
        return Poly3(-self.a, -self.b, -self.c, -self.d)

    def critical_point(self):
        """二阶导数为零处的 t（斜率极值点），d 为 0 时返回 None"""
        if abs(self.d) <= 1e-12:
            return None
        return -self.c / (3.0 * self.d)
