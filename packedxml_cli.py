#!/usr/bin/env python3
"""
PackedXml 命令行工具

解码: packedxml <路径> < 二进制文件      根节点名默认取 <路径> 的文件名
编码: packedxml --encode <路径> < xml 文本
批量: packedxml --batch <输出目录> <输入目录>
"""

import argparse
import logging
import os
import sys
import xml.etree.ElementTree as ET

from packedxml_batch import decode_directory
from packedxml_errors import PackedXmlError
from packedxml_reader import read_packed_section, to_pretty_xml
from packedxml_writer import encode_packedxml

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(prog='packedxml', description='PackedXml (Packed Section) 解码工具')
    parser.add_argument('path', help='文件路径，其文件名作为根节点名；--batch 时为输入目录')
    parser.add_argument('-r', '--root', help='根节点名（覆盖由路径得到的名字）')
    parser.add_argument('-i', '--input', help='从文件读取，而不是标准输入')
    parser.add_argument('-o', '--output', help='写到文件，而不是标准输出')
    parser.add_argument('--pretty', action='store_true', help='格式化输出')
    parser.add_argument('--indent', type=int, default=2, help='格式化缩进空格数')
    parser.add_argument('--encode', action='store_true', help='反向：读取 XML 文本，输出 PackedXml')
    parser.add_argument('--batch', metavar='OUT_DIR', help='批量解码 path 目录到 OUT_DIR')
    parser.add_argument('-v', '--verbose', action='store_true', help='输出调试日志')
    return parser


def read_input(args):
    if args.input:
        with open(args.input, 'rb') as f:
            return f.read()
    return sys.stdin.buffer.read()


def write_output(args, data):
    if args.output:
        with open(args.output, 'wb') as f:
            f.write(data)
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()


def run(args):
    if args.batch:
        result = decode_directory(args.path, args.batch, args.root, args.pretty)
        return 1 if result.failed else 0

    raw = read_input(args)
    if args.encode:
        write_output(args, encode_packedxml(raw))
        return 0

    root_name = args.root or os.path.basename(args.path)
    tree = read_packed_section(raw, root_name)
    if args.pretty:
        text = to_pretty_xml(tree, ' ' * args.indent)
    else:
        text = ET.tostring(tree, encoding='unicode') + '\n'
    write_output(args, text.encode('utf-8'))
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s - %(levelname)s - %(message)s')
    try:
        return run(args)
    except (PackedXmlError, ET.ParseError, OSError) as e:
        logger.error(f"处理失败: {args.path}，错误: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
