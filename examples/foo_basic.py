from __future__ import annotations

from dataclasses import dataclass, field

import structmap
from structmap import Int


@structmap.convertible
@dataclass
class Foo:
    a: int = field(metadata={"type": "i32"})
    b: int = field(metadata={"type": "i32"})


def main() -> None:
    foo = Foo(a=1, b=2)
    print(foo.to_map())  # {'a': Int(value=1), 'b': Int(value=2)}

    test = Foo.from_map({"a": Int(3), "b": Int(4)})
    print(test)  # Foo(a=3, b=4)

    try:
        Foo.from_map({"a": Int(3)})
    except structmap.errors.InvalidTypeError as e:
        print(e)  # invalid type: i32


if __name__ == "__main__":
    main()
