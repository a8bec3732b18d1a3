"""
smartup工具模块
该模块提供了smartup中使用的各种协作组件。
该模块组织为以下几个子模块：
- config: 配置管理
- errors: 错误类型
- file_store: 原子文件读写
- git_utils: Git仓库操作
- npm_utils: npm命令封装
- http: requests会话
- input: 用户输入处理
- lock: 项目级文件锁
- output: 输出格式化
"""
