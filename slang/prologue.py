"""
S-Language Prologue
===================

Built-in macros, prepended to every program. They are declared before any
user macro, so when a user pattern is structurally identical to one of
these the built-in one wins.

Operands of the arithmetic macros must be distinct from the target
variable (``x1 <- x1 + x2`` clears x1 before reading it); write the result
to a fresh variable and copy it back instead.
"""

PROLOGUE = r"""
@def goto {label}
        $a <- $a + 1
        if $a != 0 goto label
@end

@def if {v} = 0 goto {label}
        if v != 0 goto %E
        goto label
[%E]    nop
@end

@def if {v1} < {v2} goto {label}
        $a <- v2 - v1
        if $a != 0 goto label
@end

@def {v} <- 0
[%L]    if v = 0 goto %E
        v <- v - 1
        if v != 0 goto %L
[%E]    nop
@end

@def {v} <- {a} + 1
        v <- a
        v <- v + 1
@end

@def {v} <- {a} - 1
        v <- a
        v <- v - 1
@end

@def {v1} <- {v2}
        v1 <- 0
[%A]    if v2 != 0 goto %B
        goto %C
[%B]    v2 <- v2 - 1
        v1 <- v1 + 1
        $a <- $a + 1
        goto %A
[%C]    if $a != 0 goto %D
        goto %E
[%D]    $a <- $a - 1
        v2 <- v2 + 1
        goto %C
[%E]    nop
@end

@def {v} <- {a} + {b}
        v <- a
        $t <- b
[%C]    if $t != 0 goto %B
        goto %E
[%B]    $t <- $t - 1
        v <- v + 1
        goto %C
[%E]    nop
@end

@def {v} <- {a} - {b}
        v <- a
        $t <- b
[%C]    if $t != 0 goto %B
        goto %E
[%B]    $t <- $t - 1
        v <- v - 1
        if v != 0 goto %C
[%E]    nop
@end

@def {v} <- {a} * {b}
        v <- 0
        $t <- b
[%B]    if $t != 0 goto %A
        goto %E
[%A]    $t <- $t - 1
        $u <- a + v
        v <- $u
        goto %B
[%E]    nop
@end

# Division by zero does not terminate.
@def {v} <- {a} / {b}
        v <- 0
        $t <- a
[%C]    $u <- b - $t
        if $u != 0 goto %E
        $w <- $t - b
        $t <- $w
        v <- v + 1
        goto %C
[%E]    nop
@end

# Alternate syntax
@def inc {v}
        v <- v + 1
@end

@def dec {v}
        v <- v - 1
@end

@def jze {v} {label}
        if v = 0 goto label
@end

@def jlt {v1} {v2} {label}
        if v1 < v2 goto label
@end

@def mov {v1} {v2}
        v1 <- v2
@end
"""
