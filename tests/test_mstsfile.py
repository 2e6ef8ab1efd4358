import pytest

from railsim.mstsfile import (
    FileNode,
    MSTSFile,
    MSTSFileError,
    decode_text,
    find_after,
    fix_filename_case,
    parse_text,
    tokenize,
)


def _utf16le(text):
    return b"\xff\xfe" + text.encode("utf-16-le")


def _utf16be(text):
    return b"\xfe\xff" + text.encode("utf-16-be")


def test_decode_little_endian():
    assert decode_text(_utf16le("SIMISA abc")) == "SIMISA abc"


def test_decode_big_endian():
    assert decode_text(_utf16be("hello (x)")) == "hello (x)"


def test_decode_wide_character_becomes_question_mark():
    assert decode_text(_utf16le("a\u20acb")) == "a?b"


def test_decode_ignores_trailing_odd_byte():
    assert decode_text(_utf16le("ab") + b"\x41") == "ab"


def test_decode_requires_mark():
    with pytest.raises(MSTSFileError):
        decode_text(b"\xff")


def test_tokenize_words_and_parens():
    tokens = list(tokenize('Foo ( 1 "a b" )\r\n\tBar(x)'))
    assert tokens == ["Foo", "(", "1", "a b", ")", "Bar", "(", "x", ")"]


def test_tokenize_escapes():
    assert list(tokenize(r'"a\nb" "c\"d"')) == ["a\nb", 'c"d']


def test_tokenize_empty_quoted_string():
    assert list(tokenize('x "" y')) == ["x", "", "y"]


def test_tokenize_unterminated_quote():
    with pytest.raises(MSTSFileError):
        list(tokenize('abc "never closed'))


def test_parse_requires_heading():
    with pytest.raises(MSTSFileError):
        parse_text("NOTSIMIS ( a )")


def test_parse_structure():
    nodes = parse_text("SIMISA@@@@@@@@@@JINX0a0t______\nTr_Activity ( Name ( x y ) )")
    assert nodes[0] == FileNode("Tr_Activity")
    assert nodes[1].is_list
    name = nodes[1].find("Name")
    assert [c.value for c in name.children] == ["x", "y"]


def test_parse_unclosed_list_keeps_items():
    nodes = parse_text("SIMISA A ( b ( c")
    assert nodes[0].value == "A"
    assert nodes[1].child(0).value == "b"
    assert nodes[1].child(1).child(0).value == "c"


def test_child_out_of_range():
    node = FileNode(children=[FileNode("a")])
    assert node.child(0).value == "a"
    assert node.child(1) is None


def test_find_after_missing_and_last():
    nodes = [FileNode("a"), FileNode("b")]
    assert find_after(nodes, "a").value == "b"
    assert find_after(nodes, "b") is None
    assert find_after(nodes, "z") is None


def test_cat_children_skips_plus():
    node = FileNode(children=[FileNode("Hello "), FileNode("+"), FileNode("world")])
    assert node.cat_children() == "Hello world"


def test_read_file(tmp_path):
    path = tmp_path / "test.dat"
    path.write_bytes(_utf16le('SIMISA@@@@@@@@@@\nRoot ( Item ( "v 1" 2 ) )'))
    f = MSTSFile()
    f.read_file(path)
    root = f.find("Root")
    assert root.find("Item").cat_children() == "v 12"


def test_read_file_missing(tmp_path):
    with pytest.raises(MSTSFileError):
        MSTSFile().read_file(tmp_path / "missing.dat")


def test_read_file_bad_heading(tmp_path):
    path = tmp_path / "bad.dat"
    path.write_bytes(_utf16le("JUNK ( a )"))
    with pytest.raises(MSTSFileError):
        MSTSFile().read_file(path)


def test_read_file_wrong_case(tmp_path):
    (tmp_path / "Upper.DAT").write_bytes(_utf16le("SIMISA X ( y )"))
    f = MSTSFile()
    f.read_file(f"{tmp_path}/upper.dat")
    assert f.find("X").child(0).value == "y"


def test_fix_filename_case(tmp_path):
    (tmp_path / "MixedCase.Txt").write_text("x")
    assert fix_filename_case(f"{tmp_path}/mixedcase.txt") == f"{tmp_path}/MixedCase.Txt"


def test_fix_filename_case_without_directory():
    assert fix_filename_case("plainname") == "plainname"


def test_fix_filename_case_unmatched(tmp_path):
    wanted = f"{tmp_path}/nothing_here.txt"
    assert fix_filename_case(wanted) == wanted


def test_format_tree():
    f = MSTSFile()
    f.nodes = parse_text("SIMISA A ( x )")
    assert f.format_tree() == "node value A\nno value\n node value x\n"