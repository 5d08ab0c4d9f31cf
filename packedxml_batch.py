import concurrent.futures
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import xml.etree.ElementTree as ET

from packedxml_errors import PackedXmlError
from packedxml_reader import is_packed, read_packed_section, to_pretty_xml

logger = logging.getLogger(__name__)

SUPPORTED_EXTS = ['.xml', '.def', '.visual', '.chunk', '.settings', '.primitives', '.model', '.animation', '.anca']


@dataclass
class BatchResult:
    """批量解码结果"""
    decoded: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)


def find_packed_candidates(dir_path):
    files = []
    for root, _, names in os.walk(dir_path):
        for name in names:
            if any(name.lower().endswith(ext) for ext in SUPPORTED_EXTS):
                files.append(os.path.join(root, name))
    return sorted(files)


def decode_file(path, out_path, root_name=None, pretty=True, indent='  '):
    """
    解码单个文件写到 out_path。
    return: True 已解码；False 文件头不是 PackedXml，跳过
    """
    with open(path, 'rb') as f:
        raw = f.read()
    if not is_packed(raw):
        return False
    tree = read_packed_section(raw, root_name or os.path.basename(path))
    text = to_pretty_xml(tree, indent) if pretty else ET.tostring(tree, encoding='unicode')
    os.makedirs(os.path.dirname(out_path) or '.', exist_ok=True)
    with open(out_path, 'w', encoding='utf-8') as f:
        f.write(text)
    return True


def decode_directory(src_dir, out_dir, root_name: Optional[str] = None, pretty=True, workers=4) -> BatchResult:
    """解码目录下所有 PackedXml 文件，按相对路径写到 out_dir"""
    result = BatchResult()
    files = find_packed_candidates(src_dir)
    logger.info(f"检索到 {len(files)} 个候选文件: {src_dir}")

    def work(path):
        rel_path = os.path.relpath(path, src_dir)
        return decode_file(path, os.path.join(out_dir, rel_path), root_name, pretty)

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(work, path): path for path in files}
        for future in concurrent.futures.as_completed(futures):
            path = futures[future]
            try:
                if future.result():
                    result.decoded.append(path)
                    logger.debug(f"解码成功: {path}")
                else:
                    result.skipped.append(path)
                    logger.info(f"文件头检测失败（非PackedXml格式），跳过: {path}")
            except (PackedXmlError, OSError) as e:
                result.failed.append((path, str(e)))
                logger.error(f"解码失败: {path}，错误: {e}")

    result.decoded.sort()
    result.skipped.sort()
    result.failed.sort()
    logger.info(f"批量解码完成: 成功 {len(result.decoded)}，跳过 {len(result.skipped)}，失败 {len(result.failed)}")
    return result
